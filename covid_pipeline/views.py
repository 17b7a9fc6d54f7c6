"""
Read-only view of the rolling vaccination count, for BI and dashboard tools.

The view is plain SQL over the silver tables, so every read recomputes the
join and the running total from the current data.
"""
import sqlite3
import logging

import pandas as pd

from covid_pipeline.ratios import vaccination_percentage
from covid_pipeline.silver import DEATHS_TABLE, VACCINATIONS_TABLE

logger = logging.getLogger("Views")

VACCINATION_VIEW = "percent_population_vaccinated"

VIEW_COLUMNS = ['continent', 'country', 'date', 'population', 'new_vaccinations', 'rolling_count']

# rowid ordering keeps rows that share a date in insertion order.
VACCINATION_VIEW_SQL = f"""
CREATE VIEW {VACCINATION_VIEW} AS
SELECT
    dea.continent,
    dea.country,
    dea.date,
    dea.population,
    vac.new_vaccinations,
    SUM(COALESCE(CAST(vac.new_vaccinations AS REAL), 0.0)) OVER (
        PARTITION BY dea.country
        ORDER BY dea.date, dea.rowid, vac.rowid
        ROWS BETWEEN UNBOUNDED PRECEDING AND CURRENT ROW
    ) AS rolling_count,
    ROW_NUMBER() OVER (
        PARTITION BY dea.country
        ORDER BY dea.date, dea.rowid, vac.rowid
    ) AS row_in_country
FROM {DEATHS_TABLE} dea
JOIN {VACCINATIONS_TABLE} vac
  ON dea.country = vac.country
 AND dea.date = vac.date
WHERE dea.continent IS NOT NULL
"""


def create_vaccination_view(conn: sqlite3.Connection) -> None:
    """Create (or re-create) the percent_population_vaccinated view."""
    cursor = conn.cursor()
    cursor.execute(f"DROP VIEW IF EXISTS {VACCINATION_VIEW}")
    cursor.execute(VACCINATION_VIEW_SQL)
    conn.commit()
    logger.info(f"Created view {VACCINATION_VIEW}")


def read_vaccination_view(conn: sqlite3.Connection, with_percentage: bool = True) -> pd.DataFrame:
    """
    Query the vaccination view.

    Args:
        conn: Open connection to the pipeline database
        with_percentage: Add percentage_vaccinated (rolling_count / population * 100)

    Returns:
        View rows ordered by country and date
    """
    df = pd.read_sql(
        f"SELECT {', '.join(VIEW_COLUMNS)} FROM {VACCINATION_VIEW} ORDER BY country, row_in_country",
        conn,
        parse_dates=['date'],
    )
    df['population'] = df['population'].astype('Int64')
    df['new_vaccinations'] = df['new_vaccinations'].astype('Int64')
    if with_percentage:
        df['percentage_vaccinated'] = vaccination_percentage(df)
    return df
