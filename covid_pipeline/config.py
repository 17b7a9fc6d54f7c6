"""
Runtime configuration for the COVID pipeline.

Values are read from the environment, after loading an optional .env file.
"""
import os
import logging
from dotenv import load_dotenv

load_dotenv()  # load environment variables from .env file

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

DATA_DIR = os.environ.get("COVID_DATA_DIR", os.path.join(BASE_DIR, "data"))
DB_PATH = os.environ.get("COVID_DB_PATH", os.path.join(DATA_DIR, "covid.db"))
EXPORT_DIR = os.environ.get("COVID_EXPORT_DIR", os.path.join(DATA_DIR, "exports"))
DEATHS_CSV = os.environ.get("COVID_DEATHS_CSV", os.path.join(DATA_DIR, "sample", "covid_deaths.csv"))
VACCINATIONS_CSV = os.environ.get(
    "COVID_VACCINATIONS_CSV", os.path.join(DATA_DIR, "sample", "covid_vaccinations.csv")
)


def parse_log_level(name: str) -> int:
    """Map a level name such as "debug" to its logging constant, INFO when unknown."""
    level = logging.getLevelName(name.strip().upper())
    # getLevelName returns "Level X" for names it does not know
    return level if isinstance(level, int) else logging.INFO


LOG_DIR = os.environ.get("COVID_LOG_DIR", "logs")
LOG_LEVEL = parse_log_level(os.environ.get("COVID_LOG_LEVEL", "INFO"))

# Read AWS credentials and region from environment variables
AWS_ACCESS_KEY_ID = os.environ.get("AWS_ACCESS_KEY_ID")
AWS_SECRET_ACCESS_KEY = os.environ.get("AWS_SECRET_ACCESS_KEY")
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")
S3_BUCKET = os.environ.get("COVID_S3_BUCKET", "covid-vaccination-exports")
