import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

API_BASE_URL = os.getenv("API_BASE_URL", "https://school-api.example.com/api")
API_TIMEOUT_SECONDS = float(os.getenv("API_TIMEOUT_SECONDS", "15"))

REMARKS_MAX_LENGTH = int(os.getenv("REMARKS_MAX_LENGTH", "200"))

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
