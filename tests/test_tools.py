import json
import unittest
from unittest import mock

import requests

from services.api.tools import ToolNotFoundError, build_registry
from services.resolver.core import build_catalog

CATALOG = build_catalog([
    (22, "JKH.N0000", "JOHN KEELLS HOLDINGS PLC"),
    (23, "KHL.N0000", "JOHN KEELLS HOTELS PLC"),
    (16, "DIAL.N0000", "DIALOG AXIATA PLC"),
    (31, "SAMP.N0000", "SAMPATH BANK PLC"),
])

TOOL_NAMES = [
    "search_company",
    "get_stock_data",
    "get_detailed_company_info",
    "get_top_gainers",
    "get_top_losers",
    "get_most_active_stocks",
    "get_market_summary",
]


def session_returning(payload):
    s = mock.Mock()
    resp = s.post.return_value
    resp.raise_for_status.return_value = None
    resp.json.return_value = payload
    return s


class TestRegistry(unittest.TestCase):
    def test_lists_all_tools(self):
        reg = build_registry(CATALOG)
        tools = reg.list_tools()
        self.assertEqual([t["name"] for t in tools], TOOL_NAMES)
        search_tool = tools[0]
        self.assertEqual(search_tool["inputSchema"]["required"], ["query"])
        self.assertEqual(tools[3]["inputSchema"]["properties"], {})

    def test_unknown_tool(self):
        with self.assertRaises(ToolNotFoundError):
            build_registry(CATALOG).call("nope", {})


class TestSearchTool(unittest.TestCase):
    def test_returns_top_three(self):
        res = build_registry(CATALOG).call("search_company", {"query": "john keells"})
        self.assertFalse(res.is_error)
        body = json.loads(res.text)
        self.assertEqual(body["count"], 3)
        self.assertEqual([c["id"] for c in body["companies"]][:2], [22, 23])

    def test_empty_catalog_message(self):
        res = build_registry(build_catalog([])).call("search_company", {"query": "jkh"})
        self.assertFalse(res.is_error)
        self.assertEqual(res.text, 'No companies found matching "jkh". Try a different search term.')

    def test_query_required(self):
        reg = build_registry(CATALOG)
        self.assertTrue(reg.call("search_company", {"query": ""}).is_error)
        self.assertTrue(reg.call("search_company", {}).is_error)


class TestQuoteTools(unittest.TestCase):
    def test_stock_data(self):
        s = session_returning({"id": 1, "symbol": "JKH.N0000", "price": 195.5, "change": 2.25, "changePercentage": 1.16})
        res = build_registry(CATALOG, session=s).call("get_stock_data", {"symbol": "JKH.N0000"})
        self.assertFalse(res.is_error)
        body = json.loads(res.text)
        self.assertEqual(body["price"], "Rs. 195.50")
        self.assertEqual(body["change"], "+2.25")
        self.assertEqual(body["changePercentage"], "+1.16%")

    def test_invalid_symbol_format(self):
        s = session_returning({})
        res = build_registry(CATALOG, session=s).call("get_stock_data", {"symbol": "jkh"})
        self.assertTrue(res.is_error)
        self.assertIn("Invalid symbol format", res.text)
        s.post.assert_not_called()

    def test_symbol_with_trailing_newline_rejected(self):
        s = session_returning({})
        res = build_registry(CATALOG, session=s).call("get_stock_data", {"symbol": "JKH.N0000\n"})
        self.assertTrue(res.is_error)
        self.assertIn("Invalid symbol format", res.text)
        s.post.assert_not_called()

    def test_unexpected_reply_shape_is_an_error(self):
        s = session_returning([{"symbol": "JKH.N0000"}])
        res = build_registry(CATALOG, session=s).call("get_detailed_company_info", {"symbol": "JKH.N0000"})
        self.assertTrue(res.is_error)
        self.assertEqual(res.text, "Error fetching detailed company info: Unexpected response from companyInfoSummery")

    def test_non_ascii_names_kept(self):
        reg = build_registry(build_catalog([(7, "CAFE.N0000", "CAFÉ LANKA PLC")]))
        res = reg.call("search_company", {"query": "cafe"})
        self.assertIn("CAFÉ LANKA PLC", res.text)

    def test_symbol_not_in_catalog(self):
        res = build_registry(CATALOG, session=session_returning({})).call(
            "get_detailed_company_info", {"symbol": "ABC.N0000"})
        self.assertTrue(res.is_error)
        self.assertTrue(res.text.startswith("Error fetching detailed company info: Symbol ABC.N0000 not found"))

    def test_detailed_info(self):
        s = session_returning({"reqSymbolInfo": {"symbol": "SAMP.N0000", "name": "SAMPATH BANK PLC", "lastTradedPrice": 80}})
        res = build_registry(CATALOG, session=s).call("get_detailed_company_info", {"symbol": "SAMP.N0000"})
        body = json.loads(res.text)
        self.assertEqual(body["lastTradedPrice"], "Rs. 80.00")
        self.assertEqual(body["beta"], "N/A")

    def test_timeout_is_reported(self):
        s = mock.Mock()
        s.post.side_effect = requests.Timeout()
        res = build_registry(CATALOG, session=s).call("get_top_gainers", {})
        self.assertTrue(res.is_error)
        self.assertEqual(res.text, "Error fetching top gainers: Request timed out. Please try again.")

    def test_market_lists(self):
        s = session_returning([{"symbol": "AAA.N0000", "price": 5, "change": -0.5, "changePercentage": -9.09}])
        reg = build_registry(CATALOG, session=s)
        losers = json.loads(reg.call("get_top_losers", {}).text)
        self.assertEqual(losers["title"], "Top 10 Losers")
        self.assertEqual(losers["losers"][0]["change"], "-0.50")
        active = json.loads(reg.call("get_most_active_stocks", {}).text)
        self.assertEqual(active["count"], 1)

    def test_market_summary(self):
        s = session_returning({"tradeVolume": 1000, "shareVolume": 50, "tradeDate": 1700000000000})
        body = json.loads(build_registry(CATALOG, session=s).call("get_market_summary").text)
        self.assertEqual(body["tradeDate"], "2023-11-14T22:13:20.000Z")
        self.assertEqual(body["tradeVolume"], "Rs. 1,000")

    def test_as_content(self):
        res = build_registry(CATALOG).call("search_company", {"query": "dialog"})
        content = res.as_content()
        self.assertEqual(content["content"][0]["type"], "text")
        self.assertFalse(content["isError"])


if __name__ == "__main__":
    unittest.main()
