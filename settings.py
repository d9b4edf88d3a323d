from __future__ import annotations
import os
from typing import List

from dotenv import load_dotenv

load_dotenv()

APP_NAME = os.getenv("APP_NAME", "Astro Synastry — Core REST")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")

CORS_ALLOW_ORIGINS: List[str] = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]
TRUSTED_HOSTS: List[str] = [h.strip() for h in os.getenv("TRUSTED_HOSTS", "*").split(",") if h.strip()]
GZIP_MIN_SIZE = int(os.getenv("GZIP_MIN_SIZE", "1000"))
REQUEST_LOGGING = os.getenv("REQUEST_LOGGING", "basic").lower()  # "off" | "basic" | "full"
LOG_LEVEL = os.getenv("LOG_LEVEL", "info").lower()

# Ephemeris / chart defaults
DEFAULT_HOUSE_SYSTEM = os.getenv("DEFAULT_HOUSE_SYSTEM", "P")
EPHEMERIS_SOURCE = os.getenv("EPHEMERIS_SOURCE", "moshier").lower()  # "moshier" | "swiss"
EPHE_PATH = os.getenv("EPHE_PATH", "")

# Geocoding (Nominatim usage policy requires a descriptive user agent)
GEOCODER_USER_AGENT = os.getenv("GEOCODER_USER_AGENT", "astro-synastry-core")
GEOCODER_TIMEOUT = float(os.getenv("GEOCODER_TIMEOUT", "10"))
