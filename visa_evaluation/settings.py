"""
Service Settings

Environment-driven settings for the visa evaluation service.
Values are read once at import time from the process environment (and a local .env file).
"""

import os
from dotenv import load_dotenv

load_dotenv()

ENGINE_VERSION = os.getenv("VISA_ENGINE_VERSION", "4.0.0")

# Benchmark used as the multiplier base for salary and income floors
REFERENCE_NATIONAL_INCOME = float(os.getenv("VISA_REFERENCE_NATIONAL_INCOME", "44000000"))

LOG_LEVEL = os.getenv("VISA_LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("VISA_CORS_ORIGINS", "*").split(",")
    if origin.strip()
]
