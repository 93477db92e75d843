from __future__ import annotations

import unittest

import numpy as np

from chartlayout.adapters.normalize import coerce_number, normalize_records
from chartlayout.config import ChartConfig
from chartlayout.errors import ChartDataError


class NormalizeRecordsTests(unittest.TestCase):
    def test_records_pass_through_with_numpy_scalars_unwrapped(self) -> None:
        records = normalize_records([{"x": np.int64(1), "y": np.float32(2.5)}])
        self.assertEqual(records, ({"x": 1, "y": 2.5},))
        self.assertIsInstance(records[0]["x"], int)

    def test_column_mapping(self) -> None:
        records = normalize_records({"x": [1, 2], "y": np.asarray([3.0, 4.0])})
        self.assertEqual(records, ({"x": 1, "y": 3.0}, {"x": 2, "y": 4.0}))

    def test_mismatched_columns_rejected(self) -> None:
        with self.assertRaises(ChartDataError):
            normalize_records({"x": [1, 2], "y": [3]})

    def test_scalar_column_rejected(self) -> None:
        with self.assertRaises(ChartDataError):
            normalize_records({"x": 3})

    def test_numpy_arrays(self) -> None:
        self.assertEqual(normalize_records(np.asarray([[1, 2], [3, 4]])), ((1, 2), (3, 4)))
        structured = np.asarray([(1, 2.0)], dtype=[("x", "i4"), ("y", "f8")])
        self.assertEqual(normalize_records(structured), ({"x": 1, "y": 2.0},))
        with self.assertRaises(ChartDataError):
            normalize_records(np.zeros((2, 2, 2)))

    def test_unsupported_input(self) -> None:
        with self.assertRaises(ChartDataError):
            normalize_records(42)
        self.assertEqual(normalize_records(None), ())

    def test_pandas_dataframe(self) -> None:
        try:
            import pandas as pd
        except Exception:
            self.skipTest("pandas not available")
        frame = pd.DataFrame({"name": ["a", "b"], "v": [1, 2]})
        self.assertEqual(normalize_records(frame), ({"name": "a", "v": 1}, {"name": "b", "v": 2}))
        config = ChartConfig(width=10, height=10, data=frame)
        self.assertEqual(len(config.data), 2)

    def test_torch_tensor(self) -> None:
        try:
            import torch
        except Exception:
            self.skipTest("torch not available")
        records = normalize_records(torch.tensor([[1.0, 2.0], [3.0, 4.0]]))
        self.assertEqual(records, ((1.0, 2.0), (3.0, 4.0)))

    def test_coerce_number(self) -> None:
        self.assertEqual(coerce_number("2.5"), 2.5)
        self.assertEqual(coerce_number(np.int32(3)), 3.0)
        self.assertIsNone(coerce_number(True))
        self.assertIsNone(coerce_number(float("nan")))
        self.assertIsNone(coerce_number("abc"))
        self.assertIsNone(coerce_number(None))


if __name__ == "__main__":
    unittest.main()
