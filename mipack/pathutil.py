from __future__ import annotations

import os


def autoname(src: str, path: str, extension: str = "") -> str:
    """Derive a destination file name in ``path`` from a reference name.

    With ``extension`` the stem of ``src`` gets that extension (a leading dot
    is optional); without it the base name of ``src`` is reused as-is.
    """
    if extension:
        name = os.path.splitext(os.path.basename(src))[0] + "." + extension.lstrip(".")
    else:
        name = os.path.basename(src)
    return os.path.join(path, name) if path else name
