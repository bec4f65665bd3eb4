import html
from typing import Optional

import bleach


def clean_text(value: Optional[str]) -> Optional[str]:
    """Sanitize a user-supplied free-text value before it is stored.

    - Strips HTML tags using bleach.clean(..., strip=True)
    - Undoes the entity escaping bleach applies to the remaining text, so
      "Ben & Jerry" is stored as typed
    - Removes NULL bytes
    - Trims whitespace

    None stays None so optional fields remain absent.
    """
    if value is None:
        return None
    val = str(value).replace("\x00", "")
    val = html.unescape(bleach.clean(val, tags=set(), strip=True))
    return val.strip()
