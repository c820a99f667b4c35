"""Configuration management with environment variable support"""

import os
from pathlib import Path
from dotenv import load_dotenv

from utils.paths import MeshArchitectPaths

# Load environment variables from .env file if it exists
env_file = Path(__file__).parent.parent.parent / '.env'
if env_file.exists():
    load_dotenv(env_file)
else:
    load_dotenv()

# Logging
LOG_LEVEL = os.getenv('MESH_LOG_LEVEL', 'INFO')
LOG_FILE = os.getenv('MESH_LOG_FILE', '')

# Web API
WEB_HOST = os.getenv('MESH_WEB_HOST', '127.0.0.1')
WEB_PORT = int(os.getenv('MESH_WEB_PORT', '8090'))

# Saved session location
STATE_FILE = Path(os.getenv('MESH_STATE_FILE', str(MeshArchitectPaths.get_state_file())))

# Environment assumptions for a fresh session
DEFAULT_TERRAIN = os.getenv('MESH_DEFAULT_TERRAIN', 'Urban')
DEFAULT_EW_LEVEL = os.getenv('MESH_DEFAULT_EW_LEVEL', 'Medium')
DEFAULT_BAND = os.getenv('MESH_DEFAULT_BAND', '2.4')
