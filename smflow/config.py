"""Client configuration read from the environment."""

import os

from dotenv import load_dotenv

load_dotenv()  # load environment variables from .env file

# base URL of the flow backend, e.g. http://localhost:8080/api
BASE_URL = os.getenv("SMFLOW_BASE_URL", "http://localhost:8080/api")

# path of the realtime endpoint on the backend host
WS_PATH = os.getenv("SMFLOW_WS_PATH", "/ws")

HTTP_TIMEOUT = float(os.getenv("SMFLOW_HTTP_TIMEOUT", "10.0"))
