"""
Mesh Architect Path Constants

Centralized path definitions to reduce hardcoding across the codebase.

IMPORTANT: Always use get_real_user_home() instead of Path.home() when
the path should be in the user's home directory. This handles the case
where the planner is run with sudo but should still read the real
user's saved sessions, not root's.
"""

from pathlib import Path
import os


def get_real_user_home() -> Path:
    """
    Get the real user's home directory, even when running as root via sudo.

    Returns:
        Path to the real user's home directory
    """
    sudo_user = os.environ.get('SUDO_USER')
    if sudo_user and sudo_user != 'root':
        return Path(f'/home/{sudo_user}')

    return Path.home()


class MeshArchitectPaths:
    """Paths related to the Mesh Architect application"""

    APP_DIR_NAME = 'mesh-architect'

    @classmethod
    def get_config_dir(cls) -> Path:
        """Get config directory"""
        return get_real_user_home() / '.config' / cls.APP_DIR_NAME

    @classmethod
    def get_data_dir(cls) -> Path:
        """Get data directory (saved sessions, logs)"""
        return get_real_user_home() / '.local' / 'share' / cls.APP_DIR_NAME

    @classmethod
    def get_state_file(cls) -> Path:
        """Default location of the saved planning session"""
        return cls.get_data_dir() / 'session.json'

    @classmethod
    def ensure_user_dirs(cls) -> None:
        """Create user directories if they don't exist"""
        cls.get_config_dir().mkdir(parents=True, exist_ok=True)
        cls.get_data_dir().mkdir(parents=True, exist_ok=True)
