import unittest

from depot_release.perforce.negotiator import (
    FALLBACK_CHARSET,
    parse_host_address,
    resolve_charset,
)


class TestParseHostAddress(unittest.TestCase):
    def test_ssl_prefix_selects_secure_transport_in_any_case(self) -> None:
        for address in (
            "ssl:depot.example.org:1666",
            "SSL:depot.example.org:1666",
            "Ssl:depot.example.org:1666",
        ):
            with self.subTest(address=address):
                target = parse_host_address(address)
                self.assertTrue(target.secure)
                self.assertEqual(target.address, "depot.example.org:1666")
                self.assertNotIn("ssl:", target.address.lower())
                self.assertEqual(target.port, "ssl:depot.example.org:1666")
                self.assertEqual(target.transport, "ssl")

    def test_plain_address_is_left_unmodified(self) -> None:
        target = parse_host_address("depot.example.org:1666")
        self.assertFalse(target.secure)
        self.assertEqual(target.address, "depot.example.org:1666")
        self.assertEqual(target.port, "depot.example.org:1666")

    def test_other_protocol_prefixes_are_insecure(self) -> None:
        target = parse_host_address("tcp:depot.example.org:1666")
        self.assertFalse(target.secure)
        self.assertEqual(target.port, "tcp:depot.example.org:1666")

    def test_address_without_colon_is_insecure(self) -> None:
        target = parse_host_address("perforce")
        self.assertFalse(target.secure)
        self.assertEqual(target.address, "perforce")

    def test_hostname_starting_with_ssl_is_not_secure(self) -> None:
        target = parse_host_address("sslhost:1666")
        self.assertFalse(target.secure)


class TestResolveCharset(unittest.TestCase):
    def test_blank_charset_is_not_applied(self) -> None:
        self.assertIsNone(resolve_charset(None))
        self.assertIsNone(resolve_charset("  "))

    def test_supported_charset_is_applied(self) -> None:
        self.assertEqual(resolve_charset("utf8"), "utf8")
        self.assertEqual(resolve_charset("UTF8"), "utf8")

    def test_unsupported_charset_falls_back_to_none(self) -> None:
        self.assertEqual(resolve_charset("klingon"), FALLBACK_CHARSET)
        self.assertEqual(FALLBACK_CHARSET, "none")


if __name__ == "__main__":
    unittest.main()
