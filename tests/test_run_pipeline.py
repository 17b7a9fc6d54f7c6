import os
import sqlite3

import pandas as pd
import pytest

from covid_pipeline.continents import UNCLASSIFIED, default_lookup
from covid_pipeline.run_pipeline import CovidPipeline, main
from covid_pipeline.views import VACCINATION_VIEW, read_vaccination_view
from data_generator import generate_covid_data


def test_run_pipeline_end_to_end(deaths_csv, vaccinations_csv, db_file, tmp_path):
    pipeline = CovidPipeline(db_path=db_file)
    exported = pipeline.run_pipeline(deaths_csv, vaccinations_csv, export_dir=str(tmp_path / "exports"))

    assert set(exported) == {'gold_country_summary', 'gold_global_daily', VACCINATION_VIEW}
    for path in exported.values():
        assert os.path.exists(path)

    stats = pipeline.get_layer_stats()
    assert stats['bronze_covid_deaths'] == 5
    assert stats['silver_covid_vaccinations'] == 6
    assert stats[VACCINATION_VIEW] == 4

    view = pd.read_parquet(exported[VACCINATION_VIEW])
    assert 'World' not in set(view['country'])


def test_run_pipeline_twice_is_stable(deaths_csv, vaccinations_csv, db_file):
    pipeline = CovidPipeline(db_path=db_file)
    pipeline.run_pipeline(deaths_csv, vaccinations_csv)
    conn = sqlite3.connect(db_file)
    first = read_vaccination_view(conn)
    conn.close()

    pipeline.run_pipeline(deaths_csv, vaccinations_csv)
    conn = sqlite3.connect(db_file)
    second = read_vaccination_view(conn)
    conn.close()
    pd.testing.assert_frame_equal(first, second)


def test_run_pipeline_missing_csv(db_file, tmp_path, vaccinations_csv):
    pipeline = CovidPipeline(db_path=db_file)
    with pytest.raises(RuntimeError):
        pipeline.run_pipeline(str(tmp_path / "nope.csv"), vaccinations_csv)


def test_mark_unclassified(tmp_path, db_file):
    deaths_file = tmp_path / "deaths.csv"
    deaths_file.write_text(
        "country,date,continent,population,new_cases,new_deaths,total_deaths\n"
        "Atlantis,2021-01-01,,1000,1,0,0\n"
    )
    vaccinations_file = tmp_path / "vaccinations.csv"
    vaccinations_file.write_text("country,date,new_vaccinations\nAtlantis,2021-01-01,5\n")

    CovidPipeline(db_path=db_file).run_pipeline(str(deaths_file), str(vaccinations_file))
    conn = sqlite3.connect(db_file)
    assert read_vaccination_view(conn).empty
    conn.close()

    CovidPipeline(db_path=db_file, lookup=default_lookup(mark_unclassified=True)).run_pipeline()
    conn = sqlite3.connect(db_file)
    view = read_vaccination_view(conn)
    conn.close()
    assert view['continent'].tolist() == [UNCLASSIFIED]


def test_generated_data(tmp_path, db_file):
    deaths, vaccinations = generate_covid_data(num_days=15, seed=1)
    deaths_file = tmp_path / "deaths.csv"
    vaccinations_file = tmp_path / "vaccinations.csv"
    deaths.to_csv(deaths_file, index=False)
    vaccinations.to_csv(vaccinations_file, index=False)

    CovidPipeline(db_path=db_file).run_pipeline(str(deaths_file), str(vaccinations_file))
    conn = sqlite3.connect(db_file)
    view = read_vaccination_view(conn)
    conn.close()

    assert len(view) == 7 * 15
    assert 'World' not in set(view['country'])
    for _, group in view.groupby('country'):
        assert group['rolling_count'].is_monotonic_increasing


def test_main(deaths_csv, vaccinations_csv, db_file, tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    exit_code = main([
        '--deaths', deaths_csv,
        '--vaccinations', vaccinations_csv,
        '--db', db_file,
        '--export-dir', str(tmp_path / "exports"),
    ])
    assert exit_code == 0
    out = capsys.readouterr().out
    assert 'Pipeline execution completed' in out
    assert f'{VACCINATION_VIEW}: 4 records' in out


def test_main_reports_failure(tmp_path, db_file, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main(['--deaths', str(tmp_path / 'missing.csv'), '--db', db_file]) == 1


def test_upload_exports(monkeypatch):
    from covid_pipeline import run_pipeline

    calls = []

    def fake_upload(path, bucket, key):
        calls.append((bucket, key))
        return key != 'bad.parquet'

    monkeypatch.setattr(run_pipeline, 'upload_file_to_s3', fake_upload)
    assert run_pipeline.upload_exports({'a': '/x/a.parquet'}, bucket='b')
    assert not run_pipeline.upload_exports({'a': '/x/a.parquet', 'bad': '/x/bad.parquet'}, bucket='b')
    assert calls[0] == ('b', 'a.parquet')
