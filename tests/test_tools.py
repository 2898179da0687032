"""Tests for the simulated tools."""

import pytest

from agent_harness.tools.calculator import CalculateInput, calculate, evaluate_expression
from agent_harness.tools.database import DatabaseRecordInput, get_database_record
from agent_harness.tools.knowledge_base import KnowledgeBaseInput, search_knowledge_base
from agent_harness.tools.stocks import StockInput, get_stock_price
from agent_harness.tools.weather import WeatherInput, get_weather


class TestWeatherTool:
    """Tests for the weather lookup."""

    def test_reading_is_stable_per_city(self):
        first = get_weather(WeatherInput(city="Seattle"))
        second = get_weather(WeatherInput(city="Seattle"))

        assert first == second

    def test_reading_is_within_simulated_ranges(self):
        reading = get_weather(WeatherInput(city="London"))

        assert 5 <= reading.temperature_celsius <= 40
        assert 30 <= reading.humidity <= 89
        assert 0 <= reading.wind_speed_kmh <= 30
        assert reading.condition in {"Sunny", "Cloudy", "Rainy", "Partly Cloudy", "Snowy"}

    def test_payload_uses_pascal_case_keys(self):
        payload = get_weather(WeatherInput(city="Seattle")).model_dump(by_alias=True)

        assert set(payload) == {"City", "TemperatureCelsius", "Condition", "Humidity", "WindSpeedKmh"}

    def test_str_is_human_readable(self):
        assert str(get_weather(WeatherInput(city="Oslo"))).startswith("Oslo: ")


class TestStockTool:
    """Tests for the stock quote lookup."""

    def test_known_symbol_uses_listed_price(self):
        quote = get_stock_price(StockInput(symbol="msft"))

        assert quote.symbol == "MSFT"
        assert quote.price == 425.52

    def test_unknown_symbol_gets_stable_price(self):
        first = get_stock_price(StockInput(symbol="ZZZZ"))
        second = get_stock_price(StockInput(symbol="ZZZZ"))

        assert first == second
        assert 100 <= first.price <= 300

    def test_change_percent_matches_change(self):
        quote = get_stock_price(StockInput(symbol="NVDA"))

        assert quote.change_percent == round(quote.change / quote.price * 100, 2)


class TestCalculatorTool:
    """Tests for the restricted arithmetic evaluator."""

    @pytest.mark.parametrize(
        "expression,expected",
        [
            ("1 + 2 * 3", 7),
            ("(100*1.5)-50", 100.0),
            ("2 ** 10", 1024),
            ("-4 + 10 // 3", -1),
            ("7 % 4", 3),
        ],
    )
    def test_evaluates_arithmetic(self, expression, expected):
        assert evaluate_expression(expression) == pytest.approx(expected)

    @pytest.mark.parametrize(
        "expression",
        [
            "__import__('os').system('ls')",
            "open('/etc/passwd')",
            "x + 1",
            "[1, 2, 3]",
            "'a' * 3",
        ],
    )
    def test_rejects_anything_but_arithmetic(self, expression):
        with pytest.raises(ValueError):
            evaluate_expression(expression)

    @pytest.mark.parametrize(
        "expression",
        [
            "9 ** 9999",
            "((9**99)**99)**99",
            "(2**1000) * (2**1000)",
        ],
    )
    def test_rejects_huge_integer_results(self, expression):
        with pytest.raises(ValueError, match="Result too large"):
            evaluate_expression(expression)

    def test_large_results_within_bound(self):
        assert evaluate_expression("2 ** 1000") == 2**1000

    def test_float_overflow_is_an_error_payload(self):
        payload = calculate(CalculateInput(expression="10.0 ** 400"))

        assert "error" in payload

    def test_complex_results_are_rejected(self):
        with pytest.raises(ValueError, match="not a real number"):
            evaluate_expression("(-8) ** 0.5")

    def test_rejects_long_expressions(self):
        with pytest.raises(ValueError, match="longer than"):
            evaluate_expression("1+" * 150 + "1")

    def test_whole_results_drop_the_decimal(self):
        assert calculate(CalculateInput(expression="(100*1.5)-50")) == {
            "expression": "(100*1.5)-50",
            "result": "100",
        }

    def test_division_by_zero_is_an_error_payload(self):
        payload = calculate(CalculateInput(expression="1/0"))

        assert payload["expression"] == "1/0"
        assert "error" in payload

    def test_empty_expression_is_an_error_payload(self):
        assert calculate(CalculateInput(expression="   "))["error"] == "Expression is empty"


class TestKnowledgeBaseTool:
    """Tests for the knowledge base search."""

    def test_matches_topic(self):
        payload = search_knowledge_base(KnowledgeBaseInput(query="Refund"))

        assert [result["topic"] for result in payload["results"]] == ["refund policy"]

    def test_matches_article_body(self):
        payload = search_knowledge_base(KnowledgeBaseInput(query="SOC 2"))

        assert payload["results"][0]["topic"] == "security"

    def test_no_match(self):
        payload = search_knowledge_base(KnowledgeBaseInput(query="quantum teleportation"))

        assert payload == {"message": "No relevant information found.", "query": "quantum teleportation"}

    def test_empty_query_matches_nothing(self):
        assert "results" not in search_knowledge_base(KnowledgeBaseInput(query="  "))


class TestDatabaseTool:
    """Tests for the database record lookup."""

    def test_found_record(self):
        payload = get_database_record(DatabaseRecordInput(recordId="EMP-001", table="employees"))

        assert payload["data"]["Name"] == "Alice Johnson"
        assert payload["recordId"] == "EMP-001"

    def test_lookup_ignores_case(self):
        payload = get_database_record(DatabaseRecordInput(record_id="ord-555", table="Orders"))

        assert payload["data"]["Status"] == "Shipped"

    def test_missing_record_is_a_not_found_payload(self):
        payload = get_database_record(DatabaseRecordInput(recordId="EMP-999", table="employees"))

        assert payload["error"] == "Record 'EMP-999' not found in table 'employees'"
        assert payload["suggestion"] == "Check the record ID and table name"
        assert "data" not in payload
