"""
Tests for the cookie value object and the in-memory cookie jar.
"""
import unittest
import sys
import os

# Add parent directory to path to import app modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from gaexp_editor.utils.cookie_jar import Cookie, CookieWriteError, MemoryCookieJar


class TestMemoryCookieJar(unittest.TestCase):

    def test_with_value_keeps_attributes(self):
        cookie = Cookie("_gaexp", "old", domain=".shop.example", path="/shop", secure=True)
        updated = cookie.with_value("new")
        self.assertEqual(updated, Cookie("_gaexp", "new", domain=".shop.example", path="/shop", secure=True))

    def test_write_to_foreign_domain_fails(self):
        jar = MemoryCookieJar()
        with self.assertRaises(CookieWriteError):
            jar.set("https://other.example/", Cookie("_gaexp", "x", domain="shop.example"))

    def test_injected_failure(self):
        jar = MemoryCookieJar()
        jar.fail_writes_with = "blocked"
        with self.assertRaises(CookieWriteError):
            jar.set("https://shop.example/", Cookie("_gaexp", "x"))
        self.assertIsNone(jar.get("https://shop.example/", "_gaexp"))

    def test_domain_cookie_is_visible_on_subdomains(self):
        jar = MemoryCookieJar()
        jar.add("https://shop.example/", Cookie("_gaexp", "GAX1.2.a.1.1", domain=".shop.example"))
        self.assertIsNotNone(jar.get("https://www.shop.example/cart", "_gaexp"))
        self.assertIsNone(jar.get("https://shop.example.org/", "_gaexp"))


if __name__ == '__main__':
    unittest.main()
