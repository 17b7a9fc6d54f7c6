"""
COVID-19 Vaccination Pipeline Package

Modules:
    bronze.py       - Ingests raw deaths and vaccination CSVs into the bronze layer.
    silver.py       - Types, cleans and classifies bronze data into the silver layer.
    continents.py   - Static country to continent lookup.
    gold.py         - Joins, rolling vaccination counts and summary analyses.
    ratios.py       - Percentage metrics with null-safe division.
    views.py        - The percent_population_vaccinated SQL view.
    export.py       - Parquet export and S3 upload.
    run_pipeline.py - Orchestrates the full pipeline.

Version: 1.0.0
"""
__version__ = "1.0.0"
