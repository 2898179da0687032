"""Simulated stock quote tool."""

import random

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from agent_harness.tools.base import ToolDefinition

KNOWN_PRICES: dict[str, float] = {
    "MSFT": 425.52,
    "AAPL": 237.40,
    "GOOGL": 183.75,
    "AMZN": 205.30,
    "TSLA": 248.15,
    "META": 595.50,
    "NVDA": 135.60,
}


class StockInput(BaseModel):
    """Input schema for the stock price tool."""

    symbol: str = Field(
        ..., min_length=1, max_length=10, description="The stock ticker symbol, e.g., 'MSFT'", examples=["MSFT"]
    )


class StockQuote(BaseModel):
    """Latest price and daily change for a ticker."""

    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    symbol: str
    price: float
    change: float
    change_percent: float

    def __str__(self) -> str:
        sign = "+" if self.change >= 0 else ""
        return f"{self.symbol}: ${self.price:.2f} ({sign}{self.change:.2f}, {self.change_percent:.2f}%)"


def get_stock_price(params: StockInput) -> StockQuote:
    """Return a simulated quote; unknown tickers get a stable pseudo-random price."""
    symbol = params.symbol.strip().upper()
    rng = random.Random(symbol)

    price = KNOWN_PRICES.get(symbol)
    if price is None:
        price = 100 + rng.random() * 200

    change = round((rng.random() - 0.5) * 10, 2)
    return StockQuote(
        symbol=symbol,
        price=round(price, 2),
        change=change,
        change_percent=round(change / price * 100, 2),
    )


def create_stock_price_tool() -> ToolDefinition:
    return ToolDefinition(
        name="get_stock_price",
        description="Get the current stock price for a given ticker symbol.",
        input_schema_class=StockInput,
        handler=get_stock_price,
    )
