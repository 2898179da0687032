"""Simulated weather lookup tool."""

import random

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from agent_harness.tools.base import ToolDefinition

CONDITIONS = ["Sunny", "Cloudy", "Rainy", "Partly Cloudy", "Snowy"]


class WeatherInput(BaseModel):
    """Input schema for the weather tool."""

    city: str = Field(..., min_length=1, description="The city name, e.g., 'Seattle'", examples=["Seattle", "London"])


class WeatherReading(BaseModel):
    """Current conditions for a city."""

    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    city: str
    temperature_celsius: float
    condition: str
    humidity: int
    wind_speed_kmh: float

    def __str__(self) -> str:
        return (
            f"{self.city}: {self.temperature_celsius}°C, {self.condition}, "
            f"Humidity {self.humidity}%, Wind {self.wind_speed_kmh} km/h"
        )


def get_weather(params: WeatherInput) -> WeatherReading:
    """Return simulated weather, stable for a given city."""
    rng = random.Random(params.city)
    return WeatherReading(
        city=params.city,
        temperature_celsius=round(rng.random() * 35 + 5, 1),
        condition=rng.choice(CONDITIONS),
        humidity=rng.randint(30, 89),
        wind_speed_kmh=round(rng.random() * 30, 1),
    )


def create_weather_tool() -> ToolDefinition:
    return ToolDefinition(
        name="get_weather",
        description="Get the current weather for a given city.",
        input_schema_class=WeatherInput,
        handler=get_weather,
    )
