"""Runs the programs shipped in programs/ against several inputs each."""

import os
import unittest

from interpreter import Machine
from parser import Program


PROGRAMS_DIR = os.path.join(os.path.dirname(__file__), os.pardir, "programs")


def load(name: str) -> Program:
    with open(os.path.join(PROGRAMS_DIR, name), "r", encoding="utf-8") as handle:
        return Program.parse(handle.read())


class TestPrograms(unittest.TestCase):
    def assertOutputs(self, program, cases):
        # One parsed program, reused for every input.
        for inputs, expected in cases:
            with self.subTest(inputs=inputs[:5]):
                self.assertEqual(Machine(program, inputs).run(), expected)

    def test_countdown(self):
        self.assertOutputs(load("countdown.ram"), [([], list(range(10, -1, -1)))])

    def test_three_sum(self):
        inputs = [
            [1, 3, 2],
            [-1232323, 34324, 92384],
            [324, 546, 8023],
            [3209847, 16879823, 27034],
            [0, 0, 0],
        ]
        self.assertOutputs(load("three_sum.ram"), [(i, [sum(i)]) for i in inputs])

    def test_square(self):
        inputs = [36, 0, 1_000_000_000, 978314014, 32423]
        self.assertOutputs(load("square.ram"), [([x], [x * x]) for x in inputs])

    def test_sequence_length(self):
        inputs = [
            [1, 2, 4, 6, 8, 9, 10, 0],
            [1, 5, 6, 7, 0],
            [66] * 66 + [0],
            [0],
            [40] * 10_000 + [0],
        ]
        self.assertOutputs(load("sequence_length.ram"), [(i, [len(i) - 1]) for i in inputs])

    def test_log(self):
        cases = [
            ([2, 2 << 31], [32]),
            ([5, 1], [0]),
            ([3, 55], [3]),
            ([3, 999_999_999_999_999_999], [37]),
            ([40, 1_000_000_000], [5]),
        ]
        self.assertOutputs(load("log.ram"), cases)

    def test_unit_digit(self):
        cases = [
            ([320423789], [9]),
            ([-234234235], [5]),
            ([999_999_999_999_999_991], [1]),
            ([0], [0]),
            ([576], [6]),
        ]
        self.assertOutputs(load("unit_digit.ram"), cases)
