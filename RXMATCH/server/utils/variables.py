from __future__ import annotations

import os

from dotenv import load_dotenv

from RXMATCH.server.utils.constants import ENV_FILE_PATH
from RXMATCH.server.utils.logger import logger


###############################################################################
class EnvironmentVariables:
    def __init__(self, env_path: str = ENV_FILE_PATH) -> None:
        self.env_path = env_path
        if os.path.exists(self.env_path):
            load_dotenv(dotenv_path=self.env_path, override=True)
        else:
            logger.debug(".env file not found at: %s", self.env_path)

    # -------------------------------------------------------------------------
    def get(self, key: str, default: str | None = None) -> str | None:
        value = os.environ.get(key)
        if value is None or not value.strip():
            return default
        return value.strip()


env_variables = EnvironmentVariables()
