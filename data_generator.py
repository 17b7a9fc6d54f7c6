#!/usr/bin/env python3
"""
Synthetic COVID-19 data generator

Writes OWID-shaped deaths and vaccinations CSVs for local pipeline runs,
including a "World" aggregate row per date and zero totals before the
first recorded case.
"""
import os
import argparse
from datetime import date, timedelta
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd

DEFAULT_OUTPUT_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data", "sample")
DEFAULT_NUM_DAYS = 120
START_DATE = date(2021, 1, 1)

# country -> (continent, population)
COUNTRIES: Dict[str, Tuple[str, int]] = {
    'Bangladesh': ('Asia', 169356251),
    'Oman': ('Asia', 4520471),
    'United Kingdom': ('Europe', 67281039),
    'United States': ('North America', 336997624),
    'Brazil': ('South America', 214326223),
    'Nigeria': ('Africa', 213401323),
    'New Zealand': ('Oceania', 5129727),
}


def generate_covid_data(num_days: int = DEFAULT_NUM_DAYS, seed: int = 42) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Generate deaths and vaccinations frames covering num_days per country.

    Returns:
        (deaths, vaccinations) DataFrames with the bronze CSV columns
    """
    rng = np.random.default_rng(seed)
    deaths: List[dict] = []
    vaccinations: List[dict] = []
    world: Dict[str, Dict[str, int]] = {}

    for country, (continent, population) in COUNTRIES.items():
        total_cases = 0
        total_deaths = 0
        first_case_day = int(rng.integers(0, 10))
        for day in range(num_days):
            current = (START_DATE + timedelta(days=day)).isoformat()
            new_cases = int(rng.poisson(population * 2e-5)) if day >= first_case_day else 0
            new_deaths = int(rng.binomial(new_cases, 0.015))
            total_cases += new_cases
            total_deaths += new_deaths
            deaths.append({
                'location': country,
                'date': current,
                'continent': continent,
                'population': population,
                'total_cases': total_cases,
                'new_cases': new_cases,
                'total_deaths': total_deaths,
                'new_deaths': new_deaths,
                'total_cases_per_million': round(total_cases * 1_000_000 / population, 3),
            })
            # Some days report no vaccination figure at all.
            new_vaccinations = '' if rng.random() < 0.1 else int(rng.poisson(population * 1e-3))
            vaccinations.append({'location': country, 'date': current, 'new_vaccinations': new_vaccinations})

            totals = world.setdefault(current, {'population': 0, 'total_cases': 0, 'new_cases': 0,
                                                'total_deaths': 0, 'new_deaths': 0})
            totals['population'] += population
            totals['total_cases'] += total_cases
            totals['new_cases'] += new_cases
            totals['total_deaths'] += total_deaths
            totals['new_deaths'] += new_deaths

    for current, totals in world.items():
        deaths.append({
            'location': 'World',
            'date': current,
            'continent': '',
            'total_cases_per_million': round(totals['total_cases'] * 1_000_000 / totals['population'], 3),
            **totals,
        })

    return pd.DataFrame(deaths), pd.DataFrame(vaccinations)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Generate synthetic COVID-19 CSV files')
    parser.add_argument('--output-dir', type=str, default=DEFAULT_OUTPUT_DIR)
    parser.add_argument('--days', type=int, default=DEFAULT_NUM_DAYS)
    parser.add_argument('--seed', type=int, default=42)
    args = parser.parse_args(argv)

    os.makedirs(args.output_dir, exist_ok=True)
    deaths, vaccinations = generate_covid_data(args.days, args.seed)
    deaths_file = os.path.join(args.output_dir, "covid_deaths.csv")
    vaccinations_file = os.path.join(args.output_dir, "covid_vaccinations.csv")
    deaths.to_csv(deaths_file, index=False)
    vaccinations.to_csv(vaccinations_file, index=False)
    print(f"Generated CSV files at: {deaths_file}, {vaccinations_file}")


if __name__ == "__main__":
    main()
