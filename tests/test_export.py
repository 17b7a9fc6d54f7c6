import os
import sqlite3
from unittest import mock

import pandas as pd
from botocore.exceptions import ClientError

from covid_pipeline.export import export_table_to_parquet, upload_file_to_s3


def _make_db(db_file):
    conn = sqlite3.connect(db_file)
    conn.execute("CREATE TABLE summary (country TEXT, total REAL)")
    conn.execute("CREATE TABLE empty_table (country TEXT)")
    conn.executemany("INSERT INTO summary VALUES (?, ?)", [('Oman', 1.5), ('Peru', None)])
    conn.commit()
    conn.close()


def test_export_table_to_parquet(tmp_path):
    db_file = str(tmp_path / "covid.db")
    _make_db(db_file)
    output_file = str(tmp_path / "out" / "summary.parquet")
    assert export_table_to_parquet(db_file, "summary", output_file)
    df = pd.read_parquet(output_file)
    assert df['country'].tolist() == ['Oman', 'Peru']


def test_export_empty_or_missing_table(tmp_path):
    db_file = str(tmp_path / "covid.db")
    _make_db(db_file)
    assert not export_table_to_parquet(db_file, "empty_table", str(tmp_path / "empty.parquet"))
    assert not export_table_to_parquet(db_file, "no_such_table", str(tmp_path / "missing.parquet"))
    assert not os.path.exists(tmp_path / "empty.parquet")


def test_upload_file_to_s3(tmp_path):
    local_file = tmp_path / "summary.parquet"
    local_file.write_bytes(b"data")
    client = mock.Mock()
    assert upload_file_to_s3(str(local_file), "bucket", "summary.parquet", client=client)
    client.upload_file.assert_called_once_with(
        str(local_file), "bucket", "summary.parquet",
        ExtraArgs={'ContentType': 'application/vnd.apache-parquet'},
    )


def test_upload_file_to_s3_retries_then_fails(tmp_path):
    local_file = tmp_path / "summary.parquet"
    local_file.write_bytes(b"data")
    client = mock.Mock()
    client.upload_file.side_effect = ClientError({'Error': {'Code': '500', 'Message': 'boom'}}, 'PutObject')
    assert not upload_file_to_s3(str(local_file), "bucket", "key", client=client, retry_attempts=3, retry_delay=0)
    assert client.upload_file.call_count == 3


def test_upload_file_to_s3_recovers(tmp_path):
    local_file = tmp_path / "summary.csv"
    local_file.write_text("country\nOman\n")
    client = mock.Mock()
    client.upload_file.side_effect = [
        ClientError({'Error': {'Code': '503', 'Message': 'slow down'}}, 'PutObject'),
        None,
    ]
    assert upload_file_to_s3(str(local_file), "bucket", "key", client=client, retry_delay=0)
    assert client.upload_file.call_count == 2
    assert client.upload_file.call_args.kwargs['ExtraArgs'] is None
