import pandas as pd
import pytest

DEATHS_CSV = """location,date,continent,population,total_cases,new_cases,total_deaths,new_deaths,total_cases_per_million
Oman,2021-01-01,Asia,5000000,100,10,2,1,20.0
Oman,2021-01-02,Asia,5000000,110,10,0,0,22.0
Oman,2021-01-03,Asia,5000000,,5,3,1,23.0
World,2021-01-01,,7000000000,1000,100,20,5,0.1
Bangladesh,2021-01-01,,170000000,abc,1,1,1,
"""

VACCINATIONS_CSV = """location,date,new_vaccinations
Oman,2021-01-01,10
Oman,2021-01-02,
Oman,2021-01-03,20
World,2021-01-01,500
Bangladesh,2021-01-01,1000
Bangladesh,2021-01-05,7
"""

DEATH_FRAME_COLUMNS = ['country', 'date', 'continent', 'population', 'total_cases', 'new_cases',
                       'total_deaths', 'new_deaths']


def make_deaths(rows):
    """Build a silver-shaped deaths frame from (country, date, continent, population, ...) tuples."""
    df = pd.DataFrame(rows, columns=DEATH_FRAME_COLUMNS[:len(rows[0])])
    for col in DEATH_FRAME_COLUMNS:
        if col not in df.columns:
            df[col] = None
    df['date'] = pd.to_datetime(df['date'])
    for col in ['population', 'total_cases', 'new_cases', 'total_deaths', 'new_deaths']:
        df[col] = df[col].astype('Int64')
    return df


def make_vaccinations(rows):
    df = pd.DataFrame(rows, columns=['country', 'date', 'new_vaccinations'])
    df['date'] = pd.to_datetime(df['date'])
    df['new_vaccinations'] = df['new_vaccinations'].astype('Int64')
    return df


@pytest.fixture
def deaths_csv(tmp_path):
    path = tmp_path / "covid_deaths.csv"
    path.write_text(DEATHS_CSV)
    return str(path)


@pytest.fixture
def vaccinations_csv(tmp_path):
    path = tmp_path / "covid_vaccinations.csv"
    path.write_text(VACCINATIONS_CSV)
    return str(path)


@pytest.fixture
def db_file(tmp_path):
    return str(tmp_path / "db" / "covid.db")
