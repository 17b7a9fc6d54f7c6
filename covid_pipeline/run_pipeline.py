#!/usr/bin/env python3
"""
COVID-19 vaccination pipeline

Loads deaths and vaccination CSVs into bronze tables, cleans and classifies
them into silver tables, builds gold summaries and the
percent_population_vaccinated view, and exports the results to Parquet.
"""
import os
import sqlite3
import logging
import argparse
from datetime import datetime
from typing import Dict, Optional

from covid_pipeline import config
from covid_pipeline.bronze import (
    DEATHS_TABLE as BRONZE_DEATHS,
    VACCINATIONS_TABLE as BRONZE_VACCINATIONS,
    create_bronze_tables,
    ingest_deaths,
    ingest_vaccinations,
)
from covid_pipeline.continents import ContinentLookup, default_lookup
from covid_pipeline.export import export_table_to_parquet, upload_file_to_s3
from covid_pipeline.gold import COUNTRY_SUMMARY_TABLE, GLOBAL_DAILY_TABLE, aggregate_silver_to_gold
from covid_pipeline.silver import (
    DEATHS_TABLE as SILVER_DEATHS,
    VACCINATIONS_TABLE as SILVER_VACCINATIONS,
    create_silver_tables,
    transform_bronze_to_silver,
)
from covid_pipeline.views import VACCINATION_VIEW, create_vaccination_view
from utils.logger import LOG_FORMAT, setup_logger

logger = logging.getLogger("COVID_Pipeline")

LAYER_TABLES = {
    'bronze': [BRONZE_DEATHS, BRONZE_VACCINATIONS],
    'silver': [SILVER_DEATHS, SILVER_VACCINATIONS],
    'gold': [COUNTRY_SUMMARY_TABLE, GLOBAL_DAILY_TABLE, VACCINATION_VIEW],
}


class CovidPipeline:
    """Runs the bronze, silver and gold steps against one SQLite database."""

    def __init__(self, db_path: str = config.DB_PATH, lookup: Optional[ContinentLookup] = None):
        """
        Args:
            db_path: Path to the SQLite database file
            lookup: Continent table used by the silver step
        """
        self.db_path = db_path
        self.lookup = lookup or default_lookup()
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def create_tables(self) -> bool:
        """Create bronze and silver tables and the vaccination view."""
        conn = self.connect()
        try:
            cursor = conn.cursor()
            create_bronze_tables(cursor)
            create_silver_tables(cursor)
            conn.commit()
            create_vaccination_view(conn)
            logger.info("Database tables created successfully")
            return True
        except sqlite3.Error as e:
            logger.error(f"Error creating database tables: {e}")
            return False
        finally:
            conn.close()

    def process_bronze_layer(self, deaths_csv: str, vaccinations_csv: str) -> bool:
        """Load both CSV files into the bronze tables."""
        for csv_file in (deaths_csv, vaccinations_csv):
            if not os.path.exists(csv_file):
                logger.error(f"CSV file not found: {csv_file}")
                return False
        return ingest_deaths(deaths_csv, self.db_path) and ingest_vaccinations(vaccinations_csv, self.db_path)

    def process_silver_layer(self) -> bool:
        return transform_bronze_to_silver(self.db_path, self.lookup)

    def process_gold_layer(self) -> bool:
        if not aggregate_silver_to_gold(self.db_path):
            return False
        conn = self.connect()
        try:
            create_vaccination_view(conn)
            return True
        except sqlite3.Error as e:
            logger.error(f"Error creating view {VACCINATION_VIEW}: {e}")
            return False
        finally:
            conn.close()

    def export_data(self, layer: str, output_dir: str = config.EXPORT_DIR) -> Dict[str, str]:
        """
        Export every table of a layer to Parquet.

        Args:
            layer: 'bronze', 'silver' or 'gold'
            output_dir: Directory to save the exported files

        Returns:
            Mapping of table name to exported file path
        """
        if layer not in LAYER_TABLES:
            logger.error(f"Invalid layer: {layer}")
            return {}

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        exported = {}
        for table in LAYER_TABLES[layer]:
            output_file = os.path.join(output_dir, f"{table}_{timestamp}.parquet")
            if export_table_to_parquet(self.db_path, table, output_file):
                exported[table] = output_file
        return exported

    def get_layer_stats(self) -> Dict[str, int]:
        """Row counts per table, -1 for tables that cannot be read."""
        stats = {}
        conn = self.connect()
        try:
            cursor = conn.cursor()
            for tables in LAYER_TABLES.values():
                for table in tables:
                    try:
                        cursor.execute(f"SELECT COUNT(*) FROM {table}")
                        stats[table] = cursor.fetchone()[0]
                    except sqlite3.Error as e:
                        logger.warning(f"Could not count rows in {table}: {e}")
                        stats[table] = -1
        finally:
            conn.close()
        return stats

    def run_pipeline(
        self,
        deaths_csv: Optional[str] = None,
        vaccinations_csv: Optional[str] = None,
        export_dir: Optional[str] = None
    ) -> Dict[str, str]:
        """
        Run the full pipeline.

        Args:
            deaths_csv: Deaths CSV to ingest (bronze step skipped if None)
            vaccinations_csv: Vaccinations CSV to ingest
            export_dir: Export the gold layer here when given

        Returns:
            Mapping of exported table name to file path

        Raises:
            RuntimeError: If a layer fails
        """
        if not self.create_tables():
            raise RuntimeError("Table creation failed")

        if deaths_csv and vaccinations_csv:
            if not self.process_bronze_layer(deaths_csv, vaccinations_csv):
                raise RuntimeError("Bronze layer processing failed")

        if not self.process_silver_layer():
            raise RuntimeError("Silver layer processing failed")

        if not self.process_gold_layer():
            raise RuntimeError("Gold layer processing failed")

        exported = self.export_data('gold', output_dir=export_dir) if export_dir else {}
        logger.info(f"Pipeline completed successfully. Layer statistics: {self.get_layer_stats()}")
        return exported


def upload_exports(exported: Dict[str, str], bucket: str = config.S3_BUCKET) -> bool:
    results = [upload_file_to_s3(path, bucket, os.path.basename(path)) for path in exported.values()]
    return all(results)


def main(argv=None):
    """Command-line entry point for the pipeline."""
    parser = argparse.ArgumentParser(description='Run the COVID-19 vaccination pipeline')
    parser.add_argument('--deaths', type=str, default=config.DEATHS_CSV, help='Path to the deaths CSV')
    parser.add_argument('--vaccinations', type=str, default=config.VACCINATIONS_CSV, help='Path to the vaccinations CSV')
    parser.add_argument('--db', type=str, default=config.DB_PATH, help='Path to SQLite database')
    parser.add_argument('--export-dir', type=str, default=config.EXPORT_DIR, help='Directory for exported files')
    parser.add_argument('--export-only', action='store_true', help='Only export data without processing')
    parser.add_argument('--upload', action='store_true', help='Upload exported files to S3')
    parser.add_argument('--mark-unclassified', action='store_true',
                        help='Label countries missing from the continent table as Unclassified')
    args = parser.parse_args(argv)

    logging.basicConfig(level=config.LOG_LEVEL, format=LOG_FORMAT)
    setup_logger("COVID_Pipeline", log_file="covid_pipeline.log", level=config.LOG_LEVEL, log_dir=config.LOG_DIR)

    pipeline = CovidPipeline(db_path=args.db, lookup=default_lookup(mark_unclassified=args.mark_unclassified))

    try:
        if args.export_only:
            exported = pipeline.export_data('gold', output_dir=args.export_dir)
        else:
            exported = pipeline.run_pipeline(args.deaths, args.vaccinations, export_dir=args.export_dir)
    except RuntimeError as e:
        logger.error(f"Error running pipeline: {e}")
        return 1

    print("Pipeline execution completed:")
    for table, path in exported.items():
        print(f"{table}: {path}")

    if args.upload and not upload_exports(exported):
        return 1

    print("\nLayer statistics:")
    for table, count in pipeline.get_layer_stats().items():
        print(f"{table}: {count} records")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
