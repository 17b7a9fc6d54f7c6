import pandas as pd
import pytest

from covid_pipeline.continents import (
    AGGREGATE_REGIONS,
    CONTINENT_COUNTRIES,
    UNCLASSIFIED,
    ContinentLookup,
    backfill_continents,
    default_lookup,
)


def test_classify_known_countries():
    lookup = default_lookup()
    assert lookup.classify('Oman') == 'Asia'
    assert lookup.classify('France', current='Asia') == 'Europe'
    assert lookup.classify('Brazil') == 'South America'
    assert lookup.classify("Cote d'Ivoire") == 'Africa'


def test_aggregate_regions_have_no_continent():
    lookup = default_lookup()
    assert lookup.classify('World', current='Europe') is None
    assert lookup.classify('High-income countries') is None
    assert lookup.is_aggregate('European Union')


def test_unknown_country_keeps_current_value():
    lookup = default_lookup()
    assert lookup.classify('Atlantis', current='Europe') == 'Europe'
    assert lookup.classify('Atlantis') is None


def test_unknown_country_can_be_marked_unclassified():
    lookup = default_lookup(mark_unclassified=True)
    assert lookup.classify('Atlantis', current='Europe') == UNCLASSIFIED
    assert lookup.classify('Oman') == 'Asia'


def test_default_table_is_consistent():
    all_countries = set().union(*CONTINENT_COUNTRIES.values())
    assert not all_countries & AGGREGATE_REGIONS
    assert sum(len(c) for c in CONTINENT_COUNTRIES.values()) == len(all_countries)


def test_country_in_two_continents_is_rejected():
    with pytest.raises(ValueError):
        ContinentLookup({'Asia': ['Turkey'], 'Europe': ['Turkey']})


def test_backfill_continents():
    df = pd.DataFrame({
        'country': ['World', 'Oman', 'Atlantis', 'France'],
        'continent': ['Asia', None, 'Europe', None],
    })
    result = backfill_continents(df, default_lookup())
    assert result['continent'].dtype == object
    assert result['continent'].tolist() == [None, 'Asia', 'Europe', 'Europe']
    # the input frame is not modified
    assert df['continent'].isna().tolist() == [False, True, False, True]


def test_backfill_continents_is_idempotent():
    df = pd.DataFrame({
        'country': ['World', 'Oman', 'Atlantis', 'Peru', 'Europe'],
        'continent': [None, None, 'Europe', 'Asia', 'Europe'],
    })
    for lookup in (default_lookup(), default_lookup(mark_unclassified=True)):
        once = backfill_continents(df, lookup)
        twice = backfill_continents(once, lookup)
        pd.testing.assert_frame_equal(once, twice)


def test_backfill_logs_unmapped_countries(caplog):
    df = pd.DataFrame({'country': ['Atlantis', 'Oman'], 'continent': [None, None]})
    with caplog.at_level('WARNING', logger='ContinentClassifier'):
        backfill_continents(df, default_lookup())
    assert 'Atlantis' in caplog.text


def test_backfill_keeps_none_for_string_columns():
    df = pd.DataFrame({
        'country': pd.Series(['World', 'Atlantis', 'Oman'], dtype='string'),
        'continent': pd.Series(['Europe', None, None], dtype='string'),
    })
    result = backfill_continents(df, default_lookup())
    assert result['continent'].dtype == object
    assert result['continent'].tolist() == [None, None, 'Asia']
