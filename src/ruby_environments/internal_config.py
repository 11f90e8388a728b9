from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version
from pathlib import Path


def _get_package_version(name: str) -> str:
    """Return the installed version of *name*, or ``"0"`` if not found."""
    try:
        return _pkg_version(name)
    except PackageNotFoundError:
        return "0"


PACKAGE_VERSION = _get_package_version("ruby-environments")

# Markers used by activation.rb, see activation_codec
ACTIVATION_SEPARATOR = "RUBY_ENVIRONMENTS_ACTIVATION_SEPARATOR"
VALUE_SEPARATOR = "RUBY_ENVIRONMENTS_VS"
FIELD_SEPARATOR = "RUBY_ENVIRONMENTS_FS"

ACTIVATION_SCRIPT: Path = Path(__file__).parent.joinpath("activation.rb")

SETTINGS_NAMESPACE = "rubyEnvironments"
SETTING_EXECUTABLE_PATH = "rubyExecutablePath"
SETTING_VERSION_MANAGER = "versionManager"
SETTING_ACTIVATION_TIMEOUT = "activationTimeout"

STORAGE_KEY_PREFIX = "rubyPath"
DEFAULT_CONTEXT_KEY = "__default__"
DEFAULT_CONTEXT_NAME = "default"

DEFAULT_RUBY_EXECUTABLE = "ruby"
# -W0 silences warnings, -E forces external:internal encodings
RUBY_PROBE_FLAGS = ("-W0", "-EUTF-8:UTF-8")
PROBE_TIMEOUT_SECONDS = 30.0


def default_state_path() -> Path:
    """Location of the manual Ruby selections written by the CLI."""
    return Path.home().joinpath(".cache", "ruby-environments", "workspace-state.json")
