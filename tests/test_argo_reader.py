import io
import tempfile
import unittest
from unittest import mock
from contextlib import redirect_stdout
from datetime import datetime, timezone
from pathlib import Path

import numpy as np

from oceanviz.ingestion.argo_reader import (
    ArgoNetCDFReader,
    days_since_1950_to_datetime,
    derive_timestamp,
    epoch_to_datetime,
    extract_records,
    find_netcdf_files,
    main as read_variables_main,
)
from oceanviz.ingestion.variable_resolver import resolve_quantities

from sample_data_generator import SampleArgoGenerator

UTC = timezone.utc


def _base_source(n=5, **overrides):
    source = {
        'TEMP': np.linspace(20.0, 4.0, n),
        'PSAL': np.full(n, 35.0),
        'PRES': np.arange(n) * 10.0,
        'LATITUDE': np.float64(10.0),
        'LONGITUDE': np.float64(20.0),
    }
    source.update(overrides)
    return {k: v for k, v in source.items() if v is not None}


def _extract(source, **kwargs):
    return extract_records(resolve_quantities(source), **kwargs)


class TestTimeConversion(unittest.TestCase):
    def test_days_since_1950(self):
        self.assertEqual(days_since_1950_to_datetime(0), datetime(1950, 1, 1, tzinfo=UTC))
        self.assertEqual(days_since_1950_to_datetime(25567), datetime(2020, 1, 1, tzinfo=UTC))
        self.assertEqual(days_since_1950_to_datetime(0.5), datetime(1950, 1, 1, 12, tzinfo=UTC))

    def test_days_since_1950_invalid(self):
        self.assertIsNone(days_since_1950_to_datetime(None))
        self.assertIsNone(days_since_1950_to_datetime(float('nan')))
        self.assertIsNone(days_since_1950_to_datetime(float('inf')))
        self.assertIsNone(days_since_1950_to_datetime(1e12))

    def test_epoch_seconds_and_milliseconds(self):
        expected = datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
        self.assertEqual(epoch_to_datetime(1_700_000_000), expected)
        self.assertEqual(epoch_to_datetime(1_700_000_000_000), expected)

    def test_epoch_threshold_is_configurable(self):
        self.assertEqual(epoch_to_datetime(1_000_000, ms_threshold=1e5),
                         datetime(1970, 1, 1, 0, 16, 40, tzinfo=UTC))

    def test_epoch_invalid(self):
        self.assertIsNone(epoch_to_datetime(float('nan')))
        self.assertIsNone(epoch_to_datetime(float('-inf')))
        self.assertIsNone(epoch_to_datetime(1e300))

    def test_juld_takes_precedence_over_epoch(self):
        self.assertEqual(derive_timestamp(25567, 1_700_000_000), datetime(2020, 1, 1, tzinfo=UTC))

    def test_nan_juld_falls_back_to_epoch(self):
        self.assertEqual(derive_timestamp(float('nan'), 0), datetime(1970, 1, 1, tzinfo=UTC))

    def test_no_time_source(self):
        self.assertIsNone(derive_timestamp(None, None))


class TestExtractRecords(unittest.TestCase):
    def test_one_record_per_index_in_order(self):
        records = _extract(_base_source())
        self.assertEqual(len(records), 5)
        self.assertEqual([r.pressure for r in records], [0.0, 10.0, 20.0, 30.0, 40.0])
        # Scalar position broadcasts to every level
        self.assertTrue(all(r.latitude == 10.0 and r.longitude == 20.0 for r in records))

    def test_missing_required_quantity_yields_nothing(self):
        for name in ('TEMP', 'PSAL', 'PRES', 'LATITUDE', 'LONGITUDE'):
            with self.subTest(missing=name):
                self.assertEqual(_extract(_base_source(**{name: None})), [])

    def test_nan_required_value_skips_index(self):
        temp = np.array([20.0, np.nan, 18.0, 17.0, np.nan])
        records = _extract(_base_source(TEMP=temp))
        self.assertEqual(len(records), 3)
        self.assertEqual([r.temperature for r in records], [20.0, 18.0, 17.0])

    def test_shorter_optional_array_is_absent_not_zero(self):
        records = _extract(_base_source(DOXY=np.array([200.0, 190.0, 180.0])))
        self.assertEqual(len(records), 5)
        self.assertEqual([r.oxygen for r in records], [200.0, 190.0, 180.0, None, None])

    def test_shorter_required_array_drops_trailing_levels(self):
        records = _extract(_base_source(PSAL=np.full(3, 35.0), DOXY=np.arange(7.0)))
        self.assertEqual(len(records), 3)

    def test_nan_optional_values_become_none(self):
        records = _extract(_base_source(NITRATE=np.array([np.nan, 5.0, 6.0, 7.0, 8.0])))
        self.assertIsNone(records[0].nitrate)
        self.assertEqual(records[1].nitrate, 5.0)

    def test_depth_and_per_level_position(self):
        records = _extract(_base_source(
            LATITUDE=np.array([1.0, 2.0, 3.0, 4.0, 5.0]),
            DEPTH=np.arange(5.0) * 9.9,
        ))
        self.assertEqual(records[3].latitude, 4.0)
        self.assertAlmostEqual(records[3].depth, 29.7)

    def test_timestamps_from_juld_and_epoch(self):
        records = _extract(_base_source(JULD=np.float64(25567), TIME=np.float64(1_700_000_000)))
        self.assertTrue(all(r.time_ts == datetime(2020, 1, 1, tzinfo=UTC) for r in records))

        records = _extract(_base_source(TIME=np.float64(1_700_000_000_000)))
        self.assertEqual(records[0].time_ts, datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC))

        self.assertIsNone(_extract(_base_source())[0].time_ts)

    def test_shorter_time_array_leaves_later_levels_undated(self):
        records = _extract(_base_source(JULD=np.array([0.0, 1.0])))
        self.assertEqual(records[1].time_ts, datetime(1950, 1, 2, tzinfo=UTC))
        self.assertIsNone(records[4].time_ts)

    def test_to_row_has_table_columns(self):
        row = _extract(_base_source())[0].to_row()
        self.assertEqual(set(row), {
            'temperature', 'latitude', 'longitude', 'pressure', 'salinity',
            'oxygen', 'nitrate', 'depth', 'time_ts',
        })


class TestArgoNetCDFReader(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        self.generator = SampleArgoGenerator(str(self.root), seed=1)

    def tearDown(self):
        self.tmp.cleanup()

    def test_read_core_file(self):
        date = datetime(2020, 1, 1, tzinfo=UTC)
        ds = self.generator.generate_profile_dataset(10.0, 20.0, date, n_levels=12, n_bad_levels=2)
        path = self.generator.write_dataset(ds, 'core.nc')

        records = ArgoNetCDFReader().read_argo_file(path)
        self.assertEqual(len(records), 10)
        self.assertTrue(all(r.time_ts == date for r in records))
        self.assertTrue(all(r.latitude == 10.0 for r in records))

    def test_read_alternative_naming_and_bgc(self):
        date = datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
        for naming in ('adjusted', 'readable'):
            with self.subTest(naming=naming):
                ds = self.generator.generate_profile_dataset(
                    -5.0, 80.0, date, n_levels=10, include_bgc=True,
                    naming=naming, time_encoding='epoch',
                )
                path = self.generator.write_dataset(ds, f'{naming}.nc')

                records = ArgoNetCDFReader().read_argo_file(path)
                self.assertEqual(len(records), 10)
                self.assertIsNotNone(records[4].oxygen)
                self.assertIsNone(records[5].oxygen)
                self.assertEqual(records[0].time_ts, date)

    def test_file_missing_required_variable_is_skipped(self):
        ds = self.generator.generate_profile_dataset(10.0, 20.0, datetime(2020, 1, 1, tzinfo=UTC))
        path = self.generator.write_dataset(ds.drop_vars('PSAL'), 'no_psal.nc')

        with self.assertLogs('oceanviz.ingestion.argo_reader', level='WARNING') as logs:
            records = ArgoNetCDFReader().read_argo_file(path)
        self.assertEqual(records, [])
        self.assertIn('salinity', logs.output[0])

    def test_epoch_threshold_from_environment(self):
        with mock.patch.dict('os.environ', {'EPOCH_MS_THRESHOLD': '5'}):
            self.assertEqual(ArgoNetCDFReader().epoch_ms_threshold, 5.0)
        self.assertEqual(ArgoNetCDFReader(epoch_ms_threshold=7).epoch_ms_threshold, 7)

    def test_summarize_file(self):
        ds = self.generator.generate_profile_dataset(
            10.0, 20.0, datetime(2020, 1, 1, tzinfo=UTC), n_levels=8, include_bgc=True,
        )
        path = self.generator.write_dataset(ds, 'summary.nc')

        summary = ArgoNetCDFReader().summarize_file(path)
        self.assertEqual(summary['quantities']['temperature']['variable'], 'TEMP')
        self.assertEqual(summary['quantities']['temperature']['length'], 8)
        self.assertEqual(len(summary['quantities']['pressure']['sample']), 5)
        self.assertEqual(summary['quantities']['oxygen']['variable'], 'DOXY')
        self.assertFalse(summary['quantities']['nitrate']['found'])
        self.assertIn('Conventions', summary['global_attributes'])

    def test_read_variables_cli(self):
        ds = self.generator.generate_profile_dataset(10.0, 20.0, datetime(2020, 1, 1, tzinfo=UTC))
        path = self.generator.write_dataset(ds, 'cli.nc')

        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(read_variables_main(['--file', path]), 0)
        self.assertIn('temperature -> TEMP', out.getvalue())
        self.assertIn('nitrate: not found', out.getvalue())

        self.assertEqual(read_variables_main([str(self.root / 'missing.nc')]), 1)


class TestFindNetcdfFiles(unittest.TestCase):
    def test_recursive_case_insensitive_discovery(self):
        with tempfile.TemporaryDirectory() as d:
            root = Path(d)
            (root / 'sub' / 'deeper').mkdir(parents=True)
            for rel in ('b.nc', 'a.NC', 'notes.txt', 'sub/c.Nc', 'sub/deeper/d.nc'):
                (root / rel).write_bytes(b'')

            found = [Path(p).relative_to(root).as_posix() for p in find_netcdf_files(d)]
            self.assertEqual(found, ['a.NC', 'b.nc', 'sub/c.Nc', 'sub/deeper/d.nc'])

    def test_missing_directory_raises(self):
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(FileNotFoundError):
                find_netcdf_files(str(Path(d) / 'nope'))


if __name__ == '__main__':
    unittest.main()
