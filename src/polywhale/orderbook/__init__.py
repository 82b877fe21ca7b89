from polywhale.orderbook.book import BUY, SELL, BookLevel, OrderBook, normalize_price
from polywhale.orderbook.store import OrderBookStore

__all__ = ["BUY", "SELL", "BookLevel", "OrderBook", "OrderBookStore", "normalize_price"]
