import os

SECRET_KEY = "test-secret"

API_BASE_URL = os.getenv("API_BASE_URL", "http://attendance.test/api")
API_TIMEOUT_SECONDS = 2.0

REMARKS_MAX_LENGTH = 200

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"
