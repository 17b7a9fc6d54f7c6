import sqlite3
import csv
import os
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger("BronzeLayer")

DEATHS_TABLE = "bronze_covid_deaths"
VACCINATIONS_TABLE = "bronze_covid_vaccinations"

DEATH_COLUMNS = [
    'country', 'date', 'continent', 'population', 'total_cases', 'new_cases',
    'total_deaths', 'new_deaths', 'total_cases_per_million'
]
VACCINATION_COLUMNS = ['country', 'date', 'new_vaccinations']

# OWID extracts name the country column "location".
COLUMN_ALIASES = {'location': 'country'}


def create_bronze_tables(cursor):
    """
    Create the bronze tables if they don't already exist.

    Every value is kept as raw text; typing happens in the silver layer.
    """
    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS {DEATHS_TABLE} (
            country TEXT,
            date TEXT,
            continent TEXT,
            population TEXT,
            total_cases TEXT,
            new_cases TEXT,
            total_deaths TEXT,
            new_deaths TEXT,
            total_cases_per_million TEXT,
            ingestion_timestamp TEXT,
            source_file TEXT
        )
    """)
    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS {VACCINATIONS_TABLE} (
            country TEXT,
            date TEXT,
            new_vaccinations TEXT,
            ingestion_timestamp TEXT,
            source_file TEXT
        )
    """)


def _normalize_header(fieldnames: Sequence[str]) -> List[str]:
    return [COLUMN_ALIASES.get(name.strip(), name.strip()) for name in fieldnames]


def validate_csv_structure(csv_file: str, required_columns: list) -> bool:
    """
    Validate the structure of the CSV file.

    Args:
        csv_file: Path to the CSV file
        required_columns: List of required column names

    Returns:
        True if the CSV structure is valid, False otherwise
    """
    try:
        with open(csv_file, newline='', encoding='utf-8') as f:
            reader = csv.DictReader(f)
            if not reader.fieldnames:
                logger.error(f"CSV file {csv_file} is empty or has no headers.")
                return False
            csv_columns = _normalize_header(reader.fieldnames)
            missing_columns = [col for col in required_columns if col not in csv_columns]
            if missing_columns:
                logger.error(f"CSV file {csv_file} is missing required columns: {missing_columns}")
                return False
        return True
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error validating CSV structure: {e}")
        return False


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def _ingest(
    csv_file: str,
    db_file: str,
    table: str,
    columns: List[str],
    required_columns: List[str]
) -> bool:
    if not validate_csv_structure(csv_file, required_columns):
        logger.error(f"CSV structure validation failed for {csv_file}. Aborting ingestion.")
        return False

    conn = None
    try:
        db_dir = os.path.dirname(db_file)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        conn = sqlite3.connect(db_file)
        cursor = conn.cursor()
        create_bronze_tables(cursor)

        source_file = os.path.basename(csv_file)
        ingestion_timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')

        # Re-ingesting a file replaces its earlier rows.
        cursor.execute(f"DELETE FROM {table} WHERE source_file = ?", (source_file,))

        placeholders = ", ".join("?" for _ in range(len(columns) + 2))
        insert_sql = (
            f"INSERT INTO {table} ({', '.join(columns)}, ingestion_timestamp, source_file) "
            f"VALUES ({placeholders})"
        )

        record_count = 0
        skipped = 0
        with open(csv_file, newline='', encoding='utf-8') as f:
            reader = csv.reader(f)
            header = _normalize_header(next(reader))
            for line_number, values in enumerate(reader, start=2):
                row: Dict[str, Optional[str]] = dict(zip(header, values))
                if not _clean(row.get('country')) or not _clean(row.get('date')):
                    logger.warning(f"{csv_file}:{line_number} has no country or date. Skipping row.")
                    skipped += 1
                    continue
                cursor.execute(insert_sql, (
                    *[_clean(row.get(col)) for col in columns],
                    ingestion_timestamp,
                    source_file,
                ))
                record_count += 1

        conn.commit()
        logger.info(f"Successfully ingested {record_count} records into {table} ({skipped} skipped).")
        return True

    except Exception as e:
        logger.error(f"Error during ingestion of {csv_file}: {e}")
        if conn:
            conn.rollback()
        return False

    finally:
        if conn:
            conn.close()


def ingest_deaths(csv_file: str, db_file: str) -> bool:
    """
    Ingest a deaths/cases CSV into the bronze_covid_deaths table.

    Args:
        csv_file: Path to the CSV file
        db_file: Path to the SQLite database file

    Returns:
        True if ingestion is successful, False otherwise
    """
    required_columns = ['country', 'date', 'population', 'new_cases', 'new_deaths', 'total_deaths']
    return _ingest(csv_file, db_file, DEATHS_TABLE, DEATH_COLUMNS, required_columns)


def ingest_vaccinations(csv_file: str, db_file: str) -> bool:
    """
    Ingest a vaccinations CSV into the bronze_covid_vaccinations table.

    Args:
        csv_file: Path to the CSV file
        db_file: Path to the SQLite database file

    Returns:
        True if ingestion is successful, False otherwise
    """
    return _ingest(csv_file, db_file, VACCINATIONS_TABLE, VACCINATION_COLUMNS, VACCINATION_COLUMNS)
