from pathlib import Path

# Package root (grportfolio/) and the repository directory that holds it
ROOT_DIR = Path(__file__).parent.parent
REPO_DIR = ROOT_DIR.parent

DEFAULT_CONFIG_PATH = ROOT_DIR / "config.yaml"
DEFAULT_SQLITE_PATH = REPO_DIR / "grportfolio.db"
