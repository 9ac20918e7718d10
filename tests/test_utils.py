"""
Unit tests for point files, trace CSV files and plots
"""

import csv
import os
import tempfile
import unittest

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from tourga.utils import (
    City,
    PointFileError,
    TraceEntry,
    TraceFileError,
    order_from_positions,
    parse_trace_csv,
    plot_evolution,
    plot_tour,
    plot_trace,
    positions_from_order,
    read_points_from_file,
    write_trace_csv,
)


class TempDirTestCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, name, text):
        path = os.path.join(self.tmp, name)
        with open(path, 'w') as f:
            f.write(text)
        return path


class TestReadPoints(TempDirTestCase):

    def test_reads_points_with_whitespace(self):
        path = self.write("points.txt", "0,0\n 3.5 , -1\n1e2,4\n")
        self.assertEqual(read_points_from_file(path), [City(0.0, 0.0), City(3.5, -1.0), City(100.0, 4.0)])

    def test_skips_blank_lines(self):
        path = self.write("points.txt", "1,2\n\n3,4\n\n")
        self.assertEqual(len(read_points_from_file(path)), 2)

    def test_wrong_field_count(self):
        path = self.write("points.txt", "1,2\n3,4,5\n")
        with self.assertRaises(PointFileError) as ctx:
            read_points_from_file(path)
        self.assertIn(":2:", str(ctx.exception))

    def test_non_numeric(self):
        path = self.write("points.txt", "1,abc\n")
        with self.assertRaises(PointFileError):
            read_points_from_file(path)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            read_points_from_file(os.path.join(self.tmp, "nope.txt"))


class TestPositions(unittest.TestCase):

    def test_inverse_permutation(self):
        self.assertEqual(positions_from_order([2, 0, 3, 1]), [1, 3, 0, 2])
        self.assertEqual(order_from_positions([1, 3, 0, 2]), [2, 0, 3, 1])

    def test_invalid_positions(self):
        with self.assertRaises(ValueError):
            order_from_positions([0, 0, 1])


class TestTraceCsv(TempDirTestCase):

    def setUp(self):
        super().setUp()
        self.cities = [City(0.0, 0.0), City(3.0, 0.0), City(3.0, 4.0), City(-1.5, 2.25)]
        self.trace = [
            TraceEntry(0, 0.1, [2, 0, 3, 1]),
            TraceEntry(1, 0.125, [1, 0, 2, 3]),
        ]

    def test_layout(self):
        path = write_trace_csv(os.path.join(self.tmp, "out", "trace.csv"), self.cities, self.trace)
        with open(path, newline='') as f:
            rows = list(csv.reader(f))
        self.assertEqual(rows[0], ['iteration', 'fitness', '0.0 0.0', '3.0 0.0', '3.0 4.0', '-1.5 2.25'])
        self.assertEqual(rows[1], ['0', '0.1', '1', '3', '0', '2'])
        self.assertEqual(len(rows), 3)

    def test_round_trip(self):
        path = write_trace_csv(os.path.join(self.tmp, "trace.csv"), self.cities, self.trace)
        cities, entries = parse_trace_csv(path)
        self.assertEqual(cities, self.cities)
        self.assertEqual(entries, self.trace)

    def test_bad_header(self):
        path = self.write("trace.csv", "iteration,fitness,1.0\n")
        with self.assertRaises(TraceFileError):
            parse_trace_csv(path)

    def test_bad_row(self):
        path = self.write("trace.csv", "iteration,fitness,0 0,1 1\n0,0.5,0,0\n")
        with self.assertRaises(TraceFileError):
            parse_trace_csv(path)

    def test_empty_file(self):
        path = self.write("trace.csv", "")
        with self.assertRaises(TraceFileError):
            parse_trace_csv(path)


class TestPlots(TempDirTestCase):

    def setUp(self):
        super().setUp()
        self.cities = [City(0.0, 0.0), City(3.0, 0.0), City(3.0, 4.0)]

    def test_plot_tour_saves_image(self):
        path = os.path.join(self.tmp, "plots", "tour.png")
        plot_tour(self.cities, [0, 2, 1], save_path=path)
        self.assertTrue(os.path.getsize(path) > 0)

    def test_plot_evolution_saves_image(self):
        path = os.path.join(self.tmp, "evolution.png")
        plot_evolution({'best_history': [0.1, 0.2, 0.2], 'avg_history': [0.05, 0.1, 0.15]}, save_path=path)
        self.assertTrue(os.path.exists(path))

    def test_plot_trace(self):
        trace_path = write_trace_csv(os.path.join(self.tmp, "trace.csv"), self.cities,
                                     [TraceEntry(0, 0.125, [1, 0, 2])])
        path = os.path.join(self.tmp, "trace.png")
        plot_trace(trace_path, save_path=path)
        self.assertTrue(os.path.exists(path))

    def test_failed_save_closes_figure(self):
        open_before = plt.get_fignums()
        with self.assertRaises(ValueError):
            plot_tour(self.cities, [0, 1, 2], save_path=os.path.join(self.tmp, "tour.badext"))
        self.assertEqual(plt.get_fignums(), open_before)

    def test_plot_trace_without_entries(self):
        trace_path = write_trace_csv(os.path.join(self.tmp, "trace.csv"), self.cities, [])
        with self.assertRaises(TraceFileError):
            plot_trace(trace_path)


if __name__ == '__main__':
    unittest.main()
