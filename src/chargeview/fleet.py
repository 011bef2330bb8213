from dataclasses import dataclass

@dataclass
class Fleet:
    """User-entered values describing the simulated charging network."""

    # Number of charging points in the network
    point_count: int = 10
    # Scales the base arrival rate of every hour
    arrival_multiplier: float = 1.0
    # Power delivered by a single point while charging (kW)
    charging_power_kw: float = 11.0
