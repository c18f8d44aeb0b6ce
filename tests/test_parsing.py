import unittest
from decimal import Decimal

from floatwatch.errors import InvalidInput, InvalidReference
from floatwatch.utils.parsing import parse_float, parse_link, parse_price


class TestParsing(unittest.TestCase):

    def test_parse_link_strips_whitespace(self):
        self.assertEqual(parse_link("  steam://x \n"), "steam://x")

    def test_parse_link_rejects_empty(self):
        for text in ("", "   ", None):
            with self.subTest(text=text), self.assertRaises(InvalidReference):
                parse_link(text)

    def test_parse_float(self):
        self.assertEqual(parse_float("0.15"), 0.15)
        self.assertEqual(parse_float("0,07"), 0.07)
        self.assertEqual(parse_float(" 1 "), 1.0)

    def test_parse_float_rejects_bad_values(self):
        for text in ("abc", "1.5", "-0.1", "nan"):
            with self.subTest(text=text), self.assertRaises(InvalidInput):
                parse_float(text)

    def test_parse_price(self):
        self.assertEqual(parse_price("$12.5"), Decimal("12.50"))
        self.assertEqual(parse_price(" 3,99 "), Decimal("3.99"))
        self.assertEqual(parse_price("0"), Decimal("0.00"))

    def test_parse_price_rejects_bad_values(self):
        for text in ("twelve", "-1", "", "inf"):
            with self.subTest(text=text), self.assertRaises(InvalidInput):
                parse_price(text)


if __name__ == "__main__":
    unittest.main()
