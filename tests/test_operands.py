"""Tests for operand parsing and address resolution against a tape."""

import unittest

from operands import (
    ADDRESS_MAX,
    VALUE_MAX,
    VALUE_MIN,
    CellDirect,
    CellIndirect,
    CellUnset,
    Direct,
    Immediate,
    IndexConversion,
    Indirect,
    InvalidOperand,
    OperandNotFound,
    parse_cell_address,
    parse_operand,
)


# ---------------------------------------------------------------------------
#  Resolution
# ---------------------------------------------------------------------------

class TestOperandResolution(unittest.TestCase):
    def test_immediate(self):
        self.assertEqual(Immediate(10000000).resolve([]), 10000000)

    def test_direct(self):
        tape = [None] * 8
        with self.assertRaises(CellUnset) as ctx:
            Direct(8).resolve(tape)
        self.assertEqual(ctx.exception.address, 8)
        tape.append(20)
        self.assertEqual(Direct(8).resolve(tape), 20)

    def test_direct_unset_inside_tape(self):
        self.assertRaises(CellUnset, Direct(1).resolve, [5, None, 7])

    def test_indirect(self):
        operand = Indirect(20)
        tape = [None] * 20
        self.assertEqual(self._error(operand, tape), CellUnset(20))
        tape.append(None)
        self.assertEqual(self._error(operand, tape), CellUnset(20))
        tape[20] = -500
        self.assertEqual(self._error(operand, tape), IndexConversion(-500, 20))
        tape[20] = 16
        self.assertEqual(self._error(operand, tape), CellUnset(16))
        tape[16] = 8
        self.assertEqual(operand.resolve(tape), 8)

    def _error(self, operand, tape):
        with self.assertRaises((CellUnset, IndexConversion)) as ctx:
            operand.resolve(tape)
        return ctx.exception


class TestCellAddressResolution(unittest.TestCase):
    def test_direct_needs_no_value(self):
        self.assertEqual(CellDirect(2).resolve([0, None, 5]), 2)
        self.assertEqual(CellDirect(100).resolve([None]), 100)

    def test_indirect(self):
        tape = [None] * 6 + [7, 2]
        self.assertEqual(CellIndirect(6).resolve(tape), 7)

    def test_indirect_failures(self):
        target = CellIndirect(10)
        tape = [None] * 10
        self.assertRaises(CellUnset, target.resolve, tape)
        tape.append(None)
        self.assertRaises(CellUnset, target.resolve, tape)
        tape[10] = -5
        with self.assertRaises(IndexConversion) as ctx:
            target.resolve(tape)
        self.assertEqual((ctx.exception.value, ctx.exception.address), (-5, 10))


# ---------------------------------------------------------------------------
#  Parsing
# ---------------------------------------------------------------------------

class TestOperandParsing(unittest.TestCase):
    def test_shapes(self):
        self.assertEqual(parse_operand("=5"), Immediate(5))
        self.assertEqual(parse_operand("=-3"), Immediate(-3))
        self.assertEqual(parse_operand("7"), Direct(7))
        self.assertEqual(parse_operand("^4"), Indirect(4))

    def test_cell_shapes(self):
        self.assertEqual(parse_cell_address("3"), CellDirect(3))
        self.assertEqual(parse_cell_address("^0"), CellIndirect(0))

    def test_invalid(self):
        for text in ("-1", "^-1", "abc", "=x", "=", "^", "1.5"):
            with self.subTest(text=text):
                self.assertRaises(InvalidOperand, parse_operand, text)

    def test_immediate_is_not_a_cell(self):
        with self.assertRaises(InvalidOperand) as ctx:
            parse_cell_address("=5")
        self.assertEqual(ctx.exception.token, "=5")

    def test_missing(self):
        with self.assertRaises(OperandNotFound) as ctx:
            parse_operand(None, "load")
        self.assertEqual(ctx.exception.keyword, "load")
        self.assertRaises(OperandNotFound, parse_cell_address, None, "store")

    def test_value_range(self):
        self.assertEqual(parse_operand(f"={VALUE_MAX}"), Immediate(VALUE_MAX))
        self.assertEqual(parse_operand(f"={VALUE_MIN}"), Immediate(VALUE_MIN))
        self.assertRaises(InvalidOperand, parse_operand, f"={VALUE_MAX + 1}")
        self.assertRaises(InvalidOperand, parse_operand, f"={VALUE_MIN - 1}")

    def test_address_range(self):
        self.assertEqual(parse_operand(str(ADDRESS_MAX)), Direct(ADDRESS_MAX))
        self.assertRaises(InvalidOperand, parse_operand, str(ADDRESS_MAX + 1))
        self.assertRaises(InvalidOperand, parse_cell_address, f"^{ADDRESS_MAX + 1}")

    def test_display(self):
        self.assertEqual(str(Immediate(-2)), "=-2")
        self.assertEqual(str(Direct(3)), "3")
        self.assertEqual(str(Indirect(3)), "^3")
        self.assertEqual(str(CellIndirect(1)), "^1")
