"""Path management for particlectl.

Build artifacts (mkosi checkout, keys, password file, logs, lock) live in
the project directory, which is the ParticleOS checkout mkosi builds from.
User preferences such as the color theme follow the XDG Base Directory
Specification.

Defaults:
- Project: $PARTICLECTL_PROJECT_DIR, or the current working directory
- Config: ~/.config/particlectl/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "particlectl"

PROJECT_DIR_ENV = "PARTICLECTL_PROJECT_DIR"

MKOSI_DIR_NAME = "mkosi"
MKOSI_REPO_URL = "https://github.com/systemd/mkosi"

CONFIG_FILENAME = "particleos-config.conf"
LOCK_FILENAME = ".particleos-build.lock"
EXECUTION_LOG_FILENAME = "particleos-builds.log"
ROOT_PASSWORD_FILENAME = "mkosi.rootpw"
KEY_FILENAME = "mkosi.key"
CERT_FILENAME = "mkosi.crt"
OUTPUT_DIR_NAME = "mkosi.output"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the user configuration directory path.

    Returns:
        Path to ~/.config/particlectl/ (or XDG_CONFIG_HOME/particlectl/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_user_theme_path() -> Path:
    """Get the user theme override path.

    Returns:
        Path to ~/.config/particlectl/theme.toml.
    """
    return get_config_dir() / "theme.toml"


def get_project_dir() -> Path:
    """Get the project directory that mkosi builds from.

    Returns:
        $PARTICLECTL_PROJECT_DIR if set, else the current working directory.
    """
    override = os.environ.get(PROJECT_DIR_ENV)
    if override:
        return Path(override)
    return Path.cwd()


def get_mkosi_dir() -> Path:
    """Get the directory of the mkosi checkout."""
    return get_project_dir() / MKOSI_DIR_NAME


def get_mkosi_bin(mkosi_dir: Path | None = None) -> Path:
    """Get the path of the mkosi executable inside the checkout."""
    return (mkosi_dir if mkosi_dir is not None else get_mkosi_dir()) / "bin" / "mkosi"


def get_default_config_path() -> Path:
    """Get the default saved-configuration path.

    Returns:
        Path to <project>/particleos-config.conf.
    """
    return get_project_dir() / CONFIG_FILENAME


def get_lock_path() -> Path:
    """Get the instance lock file path."""
    return get_project_dir() / LOCK_FILENAME


def get_execution_log_path() -> Path:
    """Get the append-only execution log path."""
    return get_project_dir() / EXECUTION_LOG_FILENAME


def get_root_password_path() -> Path:
    """Get the path of the password file mkosi reads."""
    return get_project_dir() / ROOT_PASSWORD_FILENAME


def get_key_paths() -> tuple[Path, Path]:
    """Get the secure boot key and certificate paths.

    Returns:
        Tuple of (key path, certificate path).
    """
    project_dir = get_project_dir()
    return project_dir / KEY_FILENAME, project_dir / CERT_FILENAME


def get_output_dir() -> Path:
    """Get the directory mkosi writes images to."""
    return get_project_dir() / OUTPUT_DIR_NAME
