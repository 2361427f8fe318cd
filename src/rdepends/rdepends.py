"""Platform directory utilities for rdepends."""

from platformdirs import PlatformDirs

APP_DIRS = PlatformDirs("rdepends", "rdepends")
