import sqlite3
import logging
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from covid_pipeline.bronze import DEATHS_TABLE as BRONZE_DEATHS, VACCINATIONS_TABLE as BRONZE_VACCINATIONS
from covid_pipeline.continents import ContinentLookup, backfill_continents, default_lookup

logger = logging.getLogger("SilverLayer")

DEATHS_TABLE = "silver_covid_deaths"
VACCINATIONS_TABLE = "silver_covid_vaccinations"

DEATH_INTEGER_COLUMNS = ['population', 'total_cases', 'new_cases', 'total_deaths', 'new_deaths']
DEATH_COLUMNS = [
    'country', 'date', 'continent', 'population', 'total_cases', 'new_cases',
    'total_deaths', 'new_deaths', 'total_cases_per_million'
]
VACCINATION_COLUMNS = ['country', 'date', 'new_vaccinations']

DATE_FORMAT = '%Y-%m-%d'


def create_silver_tables(cursor):
    """
    Create the silver tables if they don't already exist.
    """
    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS {DEATHS_TABLE} (
            country TEXT NOT NULL,
            date TEXT NOT NULL,
            continent TEXT,
            population INTEGER,
            total_cases INTEGER,
            new_cases INTEGER,
            total_deaths INTEGER,
            new_deaths INTEGER,
            total_cases_per_million REAL
        )
    """)
    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS {VACCINATIONS_TABLE} (
            country TEXT NOT NULL,
            date TEXT NOT NULL,
            new_vaccinations INTEGER
        )
    """)


def coerce_numeric(df: pd.DataFrame, columns: Iterable[str], integer: bool = True) -> pd.DataFrame:
    """
    Convert text columns to numbers in place.

    Values that cannot be parsed become null and are reported in the log;
    the rest of the batch is kept.
    """
    for col in columns:
        if col not in df.columns:
            df[col] = None
        raw = df[col]
        converted = pd.to_numeric(raw, errors='coerce')
        failed = raw.notna() & converted.isna()
        if failed.any():
            samples = raw[failed].unique()[:5].tolist()
            logger.warning(f"{int(failed.sum())} values in '{col}' could not be converted and were set to null: {samples}")
        if integer:
            converted = np.trunc(converted.astype('float64')).astype('Int64')
        else:
            converted = converted.astype('float64')
        df[col] = converted
    return df


def _parse_dates(df: pd.DataFrame, table: str) -> pd.DataFrame:
    parsed = pd.to_datetime(df['date'], errors='coerce', format=DATE_FORMAT)
    invalid = parsed.isna() | df['country'].isna()
    if invalid.any():
        logger.warning(f"Dropping {int(invalid.sum())} rows from {table} with a missing country or invalid date.")
    df = df.assign(date=parsed)[~invalid]
    return df.reset_index(drop=True)


def derive_total_cases(df: pd.DataFrame) -> pd.DataFrame:
    """
    Fill missing total_cases from total_cases_per_million * population / 1,000,000.
    """
    derived = df['total_cases_per_million'] * df['population'].astype('float64') / 1_000_000
    fill = df['total_cases'].isna() & derived.notna()
    if fill.any():
        df.loc[fill, 'total_cases'] = np.trunc(derived[fill]).astype('Int64')
        logger.info(f"Derived total_cases for {int(fill.sum())} rows from total_cases_per_million.")
    return df


def null_zero_totals(df: pd.DataFrame, columns: Iterable[str] = ('total_cases', 'total_deaths')) -> pd.DataFrame:
    """Treat a cumulative total of 0 as unknown."""
    for col in columns:
        zeros = df[col] == 0
        zeros = zeros.fillna(False).astype(bool)
        if zeros.any():
            df.loc[zeros, col] = pd.NA
            logger.info(f"Set {int(zeros.sum())} zero values in '{col}' to null.")
    return df


def clean_deaths(bronze_df: pd.DataFrame, lookup: Optional[ContinentLookup] = None) -> pd.DataFrame:
    """
    Type, clean and classify raw deaths rows.

    Args:
        bronze_df: Raw rows as read from the bronze table
        lookup: Continent table to classify countries with (default table if None)

    Returns:
        New DataFrame with DEATH_COLUMNS
    """
    lookup = lookup or default_lookup()
    df = bronze_df.copy()
    for col in DEATH_COLUMNS:
        if col not in df.columns:
            df[col] = None
    df = _parse_dates(df, BRONZE_DEATHS)
    df = coerce_numeric(df, DEATH_INTEGER_COLUMNS)
    df = coerce_numeric(df, ['total_cases_per_million'], integer=False)
    df = derive_total_cases(df)
    df = null_zero_totals(df)
    df = backfill_continents(df, lookup)
    return df[DEATH_COLUMNS]


def clean_vaccinations(bronze_df: pd.DataFrame) -> pd.DataFrame:
    """Type and clean raw vaccination rows."""
    df = bronze_df.copy()
    df = _parse_dates(df, BRONZE_VACCINATIONS)
    df = coerce_numeric(df, ['new_vaccinations'])
    return df[VACCINATION_COLUMNS]


def _for_sql(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    out['date'] = out['date'].dt.strftime(DATE_FORMAT)
    return out.astype(object).where(out.notna(), None)


def read_silver_deaths(conn: sqlite3.Connection) -> pd.DataFrame:
    df = pd.read_sql(f"SELECT * FROM {DEATHS_TABLE} ORDER BY rowid", conn, parse_dates=['date'])
    for col in DEATH_INTEGER_COLUMNS:
        df[col] = df[col].astype('Int64')
    return df


def read_silver_vaccinations(conn: sqlite3.Connection) -> pd.DataFrame:
    df = pd.read_sql(f"SELECT * FROM {VACCINATIONS_TABLE} ORDER BY rowid", conn, parse_dates=['date'])
    df['new_vaccinations'] = df['new_vaccinations'].astype('Int64')
    return df


def transform_bronze_to_silver(db_file: str, lookup: Optional[ContinentLookup] = None) -> bool:
    """
    Rebuild the silver tables from the bronze tables in db_file.

    The silver tables are replaced as a whole, so running the step again
    on the same bronze data yields the same result.
    """
    conn = None
    try:
        conn = sqlite3.connect(db_file)
        bronze_deaths = pd.read_sql(f"SELECT * FROM {BRONZE_DEATHS} ORDER BY rowid", conn)
        bronze_vaccinations = pd.read_sql(f"SELECT * FROM {BRONZE_VACCINATIONS} ORDER BY rowid", conn)
        logger.info(
            f"Read {len(bronze_deaths)} deaths and {len(bronze_vaccinations)} vaccination records from bronze layer."
        )

        deaths = clean_deaths(bronze_deaths, lookup)
        vaccinations = clean_vaccinations(bronze_vaccinations)

        cursor = conn.cursor()
        create_silver_tables(cursor)
        cursor.execute(f"DELETE FROM {DEATHS_TABLE}")
        cursor.execute(f"DELETE FROM {VACCINATIONS_TABLE}")
        cursor.executemany(
            f"INSERT INTO {DEATHS_TABLE} ({', '.join(DEATH_COLUMNS)}) VALUES ({', '.join('?' * len(DEATH_COLUMNS))})",
            _for_sql(deaths).itertuples(index=False, name=None)
        )
        cursor.executemany(
            f"INSERT INTO {VACCINATIONS_TABLE} ({', '.join(VACCINATION_COLUMNS)}) VALUES (?, ?, ?)",
            _for_sql(vaccinations).itertuples(index=False, name=None)
        )
        conn.commit()
        logger.info(f"Wrote {len(deaths)} deaths and {len(vaccinations)} vaccination records to silver layer.")
        return True

    except Exception as e:
        logger.error(f"Error during silver layer transformation: {e}")
        if conn:
            conn.rollback()
        return False

    finally:
        if conn:
            conn.close()
