from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional

from services.ingestion.cse_client import ActiveTrade, CompanyInfo, MarketSummary, PriceMove, StockQuote, now_iso
from services.resolver.core import Entity

NA = "N/A"
SEARCH_NOTE = "Top 3 matches using fuzzy search"


def grouped(v: Optional[float]) -> str:
    """en-US style number: thousands separators, at most 3 decimals."""
    if v is None:
        return NA
    return f"{v:,.3f}".rstrip("0").rstrip(".")


def rupees(v: Optional[float]) -> str:
    # zero and missing both render as N/A
    return f"Rs. {v:.2f}" if v else NA


def rupees_grouped(v: Optional[float]) -> str:
    return f"Rs. {grouped(v)}" if v else NA


def signed(v: Optional[float], suffix: str = "", direction: Optional[float] = None) -> str:
    """Two decimals, "+" when the move is not downward.

    `direction` is the value whose sign marks the move (the absolute change
    for a percentage); it defaults to `v`. A negative `v` never gets a "+".
    """
    if v is None:
        return NA
    ref = v if direction is None else direction
    sign = "+" if ref >= 0 and v >= 0 else ""
    return f"{sign}{v:.2f}{suffix}"


def search_payload(query: str, companies: Iterable[Entity]) -> Dict[str, Any]:
    rows = [{"id": c.id, "symbol": c.symbol, "name": c.name} for c in companies]
    return {
        "query": query,
        "count": len(rows),
        "companies": rows,
        "note": SEARCH_NOTE,
    }


def stock_quote_payload(q: StockQuote) -> Dict[str, Any]:
    return {
        "symbol": q.symbol,
        "companyName": q.company_name,
        "price": f"Rs. {q.price:.2f}" if q.price is not None else NA,
        "change": signed(q.change),
        "changePercentage": signed(q.change_percentage, "%", q.change),
        "lastUpdated": q.last_updated,
    }


def company_info_payload(i: CompanyInfo) -> Dict[str, Any]:
    return {
        "symbol": i.symbol,
        "companyName": i.company_name,
        "lastTradedPrice": rupees(i.last_traded_price),
        "price52WeekHigh": rupees(i.price_52_week_high),
        "price52WeekLow": rupees(i.price_52_week_low),
        "ytdShareVolume": grouped(i.ytd_share_volume),
        "ytdTurnover": rupees_grouped(i.ytd_turnover),
        "marketCap": rupees_grouped(i.market_cap),
        "sharesIssued": grouped(i.shares_issued),
        "beta": i.beta if i.beta else NA,
        "lastUpdated": i.last_updated,
    }


def movers_payload(title: str, key: str, moves: List[PriceMove]) -> Dict[str, Any]:
    rows = [
        {
            "rank": idx,
            "symbol": m.symbol,
            "price": f"Rs. {m.price:.2f}" if m.price is not None else NA,
            "change": signed(m.change),
            "changePercentage": signed(m.change_percentage, "%", m.change),
        }
        for idx, m in enumerate(moves, start=1)
    ]
    return {"title": title, "count": len(rows), key: rows, "lastUpdated": now_iso()}


def most_active_payload(trades: List[ActiveTrade]) -> Dict[str, Any]:
    rows = [
        {
            "rank": idx,
            "symbol": t.symbol,
            "tradeVolume": grouped(t.trade_volume),
            "shareVolume": grouped(t.share_volume),
            "turnover": rupees_grouped(t.turnover),
        }
        for idx, t in enumerate(trades, start=1)
    ]
    return {
        "title": "Top 10 Most Active Stocks",
        "count": len(rows),
        "stocks": rows,
        "lastUpdated": now_iso(),
    }


def market_summary_payload(s: MarketSummary) -> Dict[str, Any]:
    return {
        "title": "Market Summary",
        "tradeVolume": rupees_grouped(s.trade_volume),
        "shareVolume": grouped(s.share_volume),
        "tradeDate": s.trade_date or NA,
        "lastUpdated": now_iso(),
    }
