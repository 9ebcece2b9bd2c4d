"""
Error taxonomy for cvm.

Every failure a command can report derives from CvmError so the CLI can turn
it into a single "Error: ..." line and exit code 1.
"""


class CvmError(Exception):
    """Base class for all handled cvm failures."""


class CatalogUnavailable(CvmError):
    """Remote version history could not be fetched and no fresh cache exists."""


class VersionNotAvailable(CvmError):
    """Requested version is missing from the catalog or from this platform."""


class DownloadFailed(CvmError):
    """Artifact transfer did not complete with a successful status."""


class ExtractionFailed(CvmError):
    """A native package archive could not be unpacked."""


class ExecutableNotFound(CvmError):
    """No executable could be located for an installed version."""


class NotInstalledLocally(CvmError):
    """Operation targets a version with no local artifact."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(
            f"Version {version} not found locally. "
            "Use `cvm list-local` to list available versions."
        )


class UnsupportedFormat(CvmError):
    """A package format reached code that does not handle it."""


class UnsupportedPlatform(CvmError):
    """The host CPU architecture has no published builds."""


class UrlDerivationError(CvmError):
    """A native package URL could not be derived from the AppImage URL."""


class SelfUpdateError(CvmError):
    """The cvm tool itself could not be updated."""
