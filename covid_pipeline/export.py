"""
Export pipeline tables and views to Parquet and upload them to S3.
"""
import os
import time
import sqlite3
import logging
from typing import Optional

import boto3
from boto3.exceptions import S3UploadFailedError
import pandas as pd
from botocore.exceptions import ClientError, EndpointConnectionError

from covid_pipeline import config

logger = logging.getLogger("Exporter")

DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 2  # seconds


def export_table_to_parquet(db_file: str, table_name: str, output_file: str) -> bool:
    """
    Write a table or view from db_file to a Parquet file.

    Returns:
        True if a file was written, False if the source was empty or unreadable
    """
    conn = sqlite3.connect(db_file)
    try:
        df = pd.read_sql(f"SELECT * FROM {table_name}", conn)
    except pd.errors.DatabaseError as e:
        logger.error(f"Could not read '{table_name}' from {db_file}: {e}")
        return False
    finally:
        conn.close()

    if df.empty:
        logger.warning(f"Table '{table_name}' in {db_file} is empty. No data to export.")
        return False

    out_dir = os.path.dirname(output_file)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    df.to_parquet(output_file, index=False)
    logger.info(f"Exported {len(df)} records from '{table_name}' to {output_file}")
    return True


def get_s3_client():
    return boto3.client(
        's3',
        aws_access_key_id=config.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=config.AWS_SECRET_ACCESS_KEY,
        region_name=config.AWS_REGION,
    )


def upload_file_to_s3(
    local_file: str,
    bucket: str,
    s3_key: str,
    client=None,
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
    retry_delay: float = DEFAULT_RETRY_DELAY
) -> bool:
    """
    Upload a local file to s3://bucket/s3_key, retrying with exponential backoff.

    Args:
        local_file: Path of the file to upload
        bucket: Target bucket name
        s3_key: Target object key
        client: boto3 S3 client (built from config when None)
        retry_attempts: Number of upload attempts
        retry_delay: Base delay between attempts in seconds

    Returns:
        True if the upload succeeded, False otherwise
    """
    client = client or get_s3_client()
    extra_args: Optional[dict] = None
    if local_file.endswith('.parquet'):
        extra_args = {'ContentType': 'application/vnd.apache-parquet'}

    for attempt in range(1, retry_attempts + 1):
        try:
            client.upload_file(local_file, bucket, s3_key, ExtraArgs=extra_args)
            logger.info(f"Uploaded {local_file} to s3://{bucket}/{s3_key}")
            return True
        except (ClientError, EndpointConnectionError, S3UploadFailedError) as e:
            logger.warning(f"Upload attempt {attempt} of {local_file} failed: {e}")
            if attempt < retry_attempts:
                sleep_time = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {sleep_time} seconds...")
                time.sleep(sleep_time)

    logger.error(f"Failed to upload {local_file} to s3://{bucket}/{s3_key} after {retry_attempts} attempts")
    return False
