"""
Country to continent classification.

The mapping is a static table: a list of aggregate/region pseudo-countries
that must never carry a continent, and one country set per continent.
A ContinentLookup is built once and handed to the cleaning pass, so the
table can be swapped or tested on its own.
"""
import logging
from typing import Dict, FrozenSet, Iterable, Optional

import pandas as pd

logger = logging.getLogger("ContinentClassifier")

ASIA = "Asia"
EUROPE = "Europe"
NORTH_AMERICA = "North America"
SOUTH_AMERICA = "South America"
AFRICA = "Africa"
OCEANIA = "Oceania"
UNCLASSIFIED = "Unclassified"

# Rows for these names are totals over several countries.
AGGREGATE_REGIONS = frozenset([
    'World', 'Europe', 'North America', 'European Union', 'South America', 'Asia',
    'Africa', 'Oceania', 'International', 'World excl. China',
    'World excl. China and South Korea', 'World excl. China, South Korea, Japan and Singapore',
    'Asia excl. China', 'European Union (27)', 'England and Wales',
    'High-income countries', 'Upper-middle-income countries',
    'Lower-middle-income countries', 'Low-income countries',
    'Summer Olympics 2020', 'Winter Olympics 2022',
])

CONTINENT_COUNTRIES: Dict[str, FrozenSet[str]] = {
    ASIA: frozenset([
        'Afghanistan', 'Armenia', 'Azerbaijan', 'Bahrain', 'Bangladesh', 'Bhutan', 'Brunei',
        'Cambodia', 'China', 'Georgia', 'Hong Kong', 'India', 'Indonesia', 'Iran', 'Iraq',
        'Israel', 'Japan', 'Jordan', 'Kazakhstan', 'Kuwait', 'Kyrgyzstan', 'Laos', 'Lebanon',
        'Macao', 'Malaysia', 'Maldives', 'Mongolia', 'Myanmar', 'Nepal', 'North Korea', 'Oman',
        'Pakistan', 'Palestine', 'Philippines', 'Qatar', 'Saudi Arabia', 'Singapore',
        'South Korea', 'Sri Lanka', 'Syria', 'Taiwan', 'Tajikistan', 'Thailand', 'East Timor',
        'Turkey', 'Turkmenistan', 'United Arab Emirates', 'Uzbekistan', 'Vietnam', 'Yemen',
    ]),
    EUROPE: frozenset([
        'Albania', 'Andorra', 'Austria', 'Belarus', 'Belgium', 'Bosnia and Herzegovina',
        'Bulgaria', 'Croatia', 'Cyprus', 'Czechia', 'Denmark', 'Estonia', 'Faeroe Islands',
        'Finland', 'France', 'Germany', 'Gibraltar', 'Greece', 'Guernsey', 'Hungary', 'Iceland',
        'Ireland', 'Isle of Man', 'Italy', 'Jersey', 'Kosovo', 'Latvia', 'Liechtenstein',
        'Lithuania', 'Luxembourg', 'Malta', 'Moldova', 'Monaco', 'Montenegro', 'Netherlands',
        'North Macedonia', 'Northern Cyprus', 'Norway', 'Poland', 'Portugal', 'Romania', 'Russia',
        'San Marino', 'Serbia', 'Slovakia', 'Slovenia', 'Spain', 'Sweden', 'Switzerland',
        'Ukraine', 'United Kingdom', 'Vatican',
    ]),
    NORTH_AMERICA: frozenset([
        'Anguilla', 'Antigua and Barbuda', 'Aruba', 'Bahamas', 'Barbados', 'Belize', 'Bermuda',
        'Bonaire Sint Eustatius and Saba', 'British Virgin Islands', 'Canada', 'Cayman Islands',
        'Costa Rica', 'Cuba', 'Curacao', 'Dominica', 'Dominican Republic', 'El Salvador',
        'Greenland', 'Grenada', 'Guadeloupe', 'Guatemala', 'Haiti', 'Honduras', 'Jamaica',
        'Martinique', 'Mexico', 'Montserrat', 'Nicaragua', 'Panama', 'Puerto Rico',
        'Saint Barthelemy', 'Saint Kitts and Nevis', 'Saint Lucia', 'Saint Martin (French part)',
        'Saint Pierre and Miquelon', 'Saint Vincent and the Grenadines',
        'Sint Maarten (Dutch part)', 'Trinidad and Tobago', 'Turks and Caicos Islands',
        'United States', 'United States Virgin Islands',
    ]),
    SOUTH_AMERICA: frozenset([
        'Argentina', 'Bolivia', 'Brazil', 'Chile', 'Colombia', 'Ecuador', 'Falkland Islands',
        'French Guiana', 'Guyana', 'Paraguay', 'Peru', 'Suriname', 'Uruguay', 'Venezuela',
    ]),
    AFRICA: frozenset([
        'Algeria', 'Angola', 'Benin', 'Botswana', 'Burkina Faso', 'Burundi', 'Cameroon',
        'Cape Verde', 'Central African Republic', 'Chad', 'Comoros', 'Congo', "Cote d'Ivoire",
        'Democratic Republic of Congo', 'Djibouti', 'Egypt', 'Equatorial Guinea', 'Eritrea',
        'Eswatini', 'Ethiopia', 'Gabon', 'Gambia', 'Ghana', 'Guinea', 'Guinea-Bissau', 'Kenya',
        'Lesotho', 'Liberia', 'Libya', 'Madagascar', 'Malawi', 'Mali', 'Mauritania', 'Mauritius',
        'Mayotte', 'Morocco', 'Mozambique', 'Namibia', 'Niger', 'Nigeria', 'Reunion', 'Rwanda',
        'Saint Helena', 'Sao Tome and Principe', 'Senegal', 'Seychelles', 'Sierra Leone',
        'Somalia', 'South Africa', 'South Sudan', 'Sudan', 'Tanzania', 'Togo', 'Tunisia',
        'Uganda', 'Western Sahara', 'Zambia', 'Zimbabwe',
    ]),
    OCEANIA: frozenset([
        'American Samoa', 'Australia', 'Cook Islands', 'Fiji', 'French Polynesia', 'Guam',
        'Kiribati', 'Marshall Islands', 'Micronesia (country)', 'Nauru', 'New Caledonia',
        'New Zealand', 'Niue', 'Northern Mariana Islands', 'Palau', 'Papua New Guinea',
        'Pitcairn', 'Samoa', 'Solomon Islands', 'Tokelau', 'Tonga', 'Tuvalu', 'Vanuatu',
        'Wallis and Futuna',
    ]),
}


class ContinentLookup:
    """Immutable country -> continent table."""

    def __init__(
        self,
        continent_countries: Dict[str, Iterable[str]],
        aggregate_regions: Iterable[str] = AGGREGATE_REGIONS,
        mark_unclassified: bool = False
    ):
        """
        Args:
            continent_countries: Continent name mapped to its member countries
            aggregate_regions: Names that always get a null continent
            mark_unclassified: Label unknown countries as UNCLASSIFIED instead
                of keeping their current continent
        """
        self.aggregate_regions = frozenset(aggregate_regions)
        self.mark_unclassified = mark_unclassified
        self._continent_of: Dict[str, str] = {}
        for continent, countries in continent_countries.items():
            for country in countries:
                if country in self._continent_of:
                    raise ValueError(
                        f"{country} is listed under both {self._continent_of[country]} and {continent}"
                    )
                self._continent_of[country] = continent

    def __contains__(self, country: str) -> bool:
        return country in self._continent_of or country in self.aggregate_regions

    def is_aggregate(self, country: str) -> bool:
        return country in self.aggregate_regions

    def classify(self, country: str, current: Optional[str] = None) -> Optional[str]:
        """
        Resolve the continent of a country.

        Args:
            country: Country name as it appears in the dataset
            current: Continent value currently stored for the row

        Returns:
            None for aggregate regions, the mapped continent for known
            countries, otherwise `current` (or UNCLASSIFIED when the lookup
            was built with mark_unclassified=True).
        """
        if country in self.aggregate_regions:
            return None
        if country in self._continent_of:
            return self._continent_of[country]
        if self.mark_unclassified:
            return UNCLASSIFIED
        return current


def default_lookup(mark_unclassified: bool = False) -> ContinentLookup:
    return ContinentLookup(CONTINENT_COUNTRIES, AGGREGATE_REGIONS, mark_unclassified=mark_unclassified)


def backfill_continents(df: pd.DataFrame, lookup: ContinentLookup) -> pd.DataFrame:
    """
    Return a copy of `df` with its continent column resolved through `lookup`.

    The input frame is left untouched. Running the backfill on its own
    output changes nothing.
    """
    result = df.copy()
    if 'continent' not in result.columns:
        result['continent'] = None

    current = result['continent'].astype(object).where(result['continent'].notna(), None)
    result['continent'] = pd.Series(
        [lookup.classify(country, continent) for country, continent in zip(result['country'], current)],
        index=result.index,
        dtype=object,
    )

    unmapped = sorted({c for c in result['country'].unique() if c not in lookup})
    if unmapped:
        logger.warning(f"{len(unmapped)} countries are not in the continent table: {unmapped}")
    return result
