import sqlite3
import logging
from datetime import datetime
from typing import Iterable, Optional

import pandas as pd

from covid_pipeline.continents import AGGREGATE_REGIONS
from covid_pipeline.ratios import case_percentage, death_percentage, percentage, vaccination_percentage
from covid_pipeline.silver import read_silver_deaths, read_silver_vaccinations

logger = logging.getLogger("GoldLayer")

COUNTRY_SUMMARY_TABLE = "gold_country_summary"
GLOBAL_DAILY_TABLE = "gold_global_daily"

JOINED_COLUMNS = ['continent', 'country', 'date', 'population', 'new_vaccinations']


def join_deaths_vaccinations(deaths: pd.DataFrame, vaccinations: pd.DataFrame) -> pd.DataFrame:
    """
    Pair deaths and vaccination rows on (country, date).

    Inner join: keys missing on either side are dropped, and a key that
    appears several times on a side yields every combination. Rows without
    a continent (aggregate regions such as "World") are excluded.
    """
    joined = deaths[['continent', 'country', 'date', 'population']].merge(
        vaccinations[['country', 'date', 'new_vaccinations']],
        on=['country', 'date'],
        how='inner',
        sort=False,
    )
    joined = joined[joined['continent'].notna()]
    return joined[JOINED_COLUMNS].reset_index(drop=True)


def add_rolling_count(joined: pd.DataFrame) -> pd.DataFrame:
    """
    Add rolling_count, the running total of new_vaccinations per country.

    Rows are ordered by date within each country; rows sharing a date keep
    their input order. Missing vaccination counts add nothing to the total
    but stay missing in new_vaccinations.
    """
    result = joined.sort_values(['country', 'date'], kind='mergesort').reset_index(drop=True)
    doses = pd.to_numeric(result['new_vaccinations'], errors='coerce').astype('float64').fillna(0.0)
    result['rolling_count'] = doses.groupby(result['country'], sort=False).cumsum()
    return result


def compute_vaccination_progress(deaths: pd.DataFrame, vaccinations: pd.DataFrame) -> pd.DataFrame:
    """Joined rows with rolling_count and percentage_vaccinated."""
    progress = add_rolling_count(join_deaths_vaccinations(deaths, vaccinations))
    progress['percentage_vaccinated'] = vaccination_percentage(progress)
    return progress


def _select_countries(deaths: pd.DataFrame, countries: Optional[Iterable[str]]) -> pd.DataFrame:
    if countries is None:
        return deaths
    return deaths[deaths['country'].isin(list(countries))]


def death_percentage_by_country(deaths: pd.DataFrame, countries: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """Likelihood of dying after infection, per country and date."""
    df = _select_countries(deaths, countries)
    df = df[['country', 'date', 'total_cases', 'total_deaths']].copy()
    df['death_percentage'] = death_percentage(df)
    return df.sort_values(['country', 'date']).reset_index(drop=True)


def case_percentage_by_country(deaths: pd.DataFrame, countries: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """Share of the population infected, per country and date."""
    df = _select_countries(deaths, countries)
    df = df[['country', 'date', 'population', 'total_cases']].copy()
    df['case_percentage'] = case_percentage(df)
    return df.sort_values(['country', 'date']).reset_index(drop=True)


def highest_infection_rates(deaths: pd.DataFrame, name_prefix: Optional[str] = None) -> pd.DataFrame:
    """
    Countries ranked by the largest share of their population infected.

    Args:
        deaths: Silver deaths rows
        name_prefix: Only keep countries whose name starts with this text

    Returns:
        DataFrame with country, population, highest_infection_count and
        infected_population_percentage, highest percentage first
    """
    df = deaths
    if name_prefix:
        df = df[df['country'].str.startswith(name_prefix)]
    df = df.assign(infected_percentage=case_percentage(df))
    summary = (
        df.groupby(['country', 'population'], dropna=False)
        .agg(
            highest_infection_count=('total_cases', 'max'),
            infected_population_percentage=('infected_percentage', 'max'),
        )
        .reset_index()
    )
    return summary.sort_values('infected_population_percentage', ascending=False, na_position='last').reset_index(drop=True)


def highest_death_counts(deaths: pd.DataFrame, regions: bool = False) -> pd.DataFrame:
    """
    Total deaths and deaths as a share of population, highest share first.

    Args:
        deaths: Silver deaths rows
        regions: Rank aggregate regions ("World", "Europe", ...) when True,
            real countries when False
    """
    is_region = deaths['country'].isin(AGGREGATE_REGIONS)
    df = deaths[is_region] if regions else deaths[~is_region]
    df = df.assign(death_share=percentage(df['total_deaths'], df['population']))
    summary = (
        df.groupby(['country', 'population'], dropna=False)
        .agg(
            total_death_count=('total_deaths', 'max'),
            total_death_percentage=('death_share', 'max'),
        )
        .reset_index()
    )
    return summary.sort_values('total_death_percentage', ascending=False, na_position='last').reset_index(drop=True)


def global_numbers_by_date(deaths: pd.DataFrame, regions: Iterable[str] = ('World',)) -> pd.DataFrame:
    """
    Daily new cases and deaths for aggregate regions.

    death_percentage is sum(new_deaths) / sum(population) * 100 for each
    date and region.
    """
    df = deaths[deaths['country'].isin(list(regions))]
    daily = (
        df.groupby(['date', 'country'])
        .agg(
            total_new_cases=('new_cases', 'sum'),
            total_new_deaths=('new_deaths', 'sum'),
            population=('population', 'sum'),
        )
        .reset_index()
    )
    daily['death_percentage'] = percentage(daily['total_new_deaths'], daily['population'])
    return daily.drop(columns=['population']).sort_values(['date', 'country']).reset_index(drop=True)


def build_country_summary(deaths: pd.DataFrame, vaccinations: pd.DataFrame) -> pd.DataFrame:
    """
    One row per country with its peak infection, death and vaccination figures.
    """
    countries = deaths[deaths['continent'].notna()]
    infections = highest_infection_rates(countries)
    fatalities = highest_death_counts(countries)
    progress = compute_vaccination_progress(deaths, vaccinations)
    vaccinated = (
        progress.groupby('country')
        .agg(
            total_vaccinations=('rolling_count', 'max'),
            percentage_vaccinated=('percentage_vaccinated', 'max'),
        )
        .reset_index()
    )
    continents = countries[['country', 'continent']].drop_duplicates('country')
    summary = (
        continents
        .merge(infections, on='country', how='left')
        .merge(fatalities.drop(columns=['population']), on='country', how='left')
        .merge(vaccinated, on='country', how='left')
    )
    # A country whose population changed over time appears once per population value.
    summary = summary.sort_values(['country', 'population']).drop_duplicates('country', keep='last')
    return summary.reset_index(drop=True)


def aggregate_silver_to_gold(db_file: str) -> bool:
    """
    Aggregate the silver tables in db_file into the gold summary tables.

    Both gold tables are rebuilt from scratch on each run.
    """
    conn = None
    try:
        conn = sqlite3.connect(db_file)
        deaths = read_silver_deaths(conn)
        vaccinations = read_silver_vaccinations(conn)
        if deaths.empty:
            logger.info("No data in silver layer to aggregate for gold layer.")
            return True

        processing_timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')

        summary = build_country_summary(deaths, vaccinations)
        summary['processing_timestamp'] = processing_timestamp
        daily = global_numbers_by_date(deaths, regions=sorted(AGGREGATE_REGIONS))
        daily['date'] = daily['date'].dt.strftime('%Y-%m-%d')
        daily['processing_timestamp'] = processing_timestamp

        summary.to_sql(COUNTRY_SUMMARY_TABLE, conn, if_exists='replace', index=False)
        daily.to_sql(GLOBAL_DAILY_TABLE, conn, if_exists='replace', index=False)
        conn.commit()
        logger.info(
            f"Successfully aggregated {len(summary)} country summaries and {len(daily)} daily region rows into gold layer."
        )
        return True

    except Exception as e:
        logger.error(f"Error during gold layer aggregation: {e}")
        if conn:
            conn.rollback()
        return False

    finally:
        if conn:
            conn.close()
