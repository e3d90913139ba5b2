"""Version information for launchpad."""

from importlib import metadata


def get_version() -> str:
    """Get the current version of the package.

    Returns:
        str: Version string from package metadata, or fallback value
    """
    try:
        return metadata.version("launchpad")
    except metadata.PackageNotFoundError:
        # Fallback for source checkouts where the package isn't installed
        return "0.1.0-dev"
