from pathlib import Path
from Modules.RPGMAssetCipher.model import KeyFill

HOST = "0.0.0.0"
PORT = 12345
AUTHORIZATION = None  # Fill this if you need
WORK_DIR = Path(__file__).parent  # Relative request paths are resolved against it

# Batch configuration
CONCURRENCY = 16
STRICT_MODE = False  # Abort a batch on its first failed file
KEY_FILL = KeyFill.ZERO  # Fill for key bytes a short known header cannot recover
SHOW_PROGRESS = True
