import re
import unicodedata

from cms_rbac.core.exceptions import ValidationError

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_REPEATED_UNDERSCORE = re.compile(r"_+")


def derive_key(title: str) -> str:
    """
    Slug a role title into its key.

    "Content Manager!" -> "content_manager", "Éditeur 2.0" -> "editeur_2_0".
    Raises ValidationError when the title has no ASCII alphanumeric content.
    """
    lowered = (title or "").lower()
    decomposed = unicodedata.normalize("NFKD", lowered)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    key = _NON_ALNUM.sub("_", stripped)
    key = _REPEATED_UNDERSCORE.sub("_", key).strip("_")
    if not key:
        raise ValidationError("Role title must contain at least one letter or digit")
    return key
