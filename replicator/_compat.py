"""Python 3.10 backports used across the package."""

import sys

if sys.version_info >= (3, 11):
    import tomllib
    from enum import StrEnum
else:
    import tomli as tomllib  # type: ignore[no-redef]
    from backports.strenum import StrEnum  # type: ignore[import-not-found, no-redef]

__all__ = ["StrEnum", "tomllib"]
