# lfo.py
"""
Low-frequency oscillators for parameter modulation.

LFO is a single sine oscillator remapped into [min_value, max_value].
RandomLFO chains five of them so the output drifts without an audible or
visible period: two very slow oscillators drive the rates of a rate LFO
and a value LFO, the rate LFO drives the rate of the output LFO, and the
value LFO places the output LFO's narrow working band.
"""
import logging
import math
import numpy as np
from typing import Optional

from constants import (
    TWO_PI, RANDOM_LFO_BAND_RATIO, RANDOM_LFO_SUB_RATE_RANGE,
    RANDOM_LFO_RATE_LFO_RATE, RANDOM_LFO_VALUE_LFO_RATE
)
from utils import require_finite, require_non_negative, require_ordered

# --- Data Contracts ---
#
# class LFO:
#   - update(self, dt: float) -> None:
#     - Side Effects: phase += rate * dt * 2*pi, then the value is recomputed.
#   - value (property) -> float:
#     - Outputs: the last computed value, not recomputed on read.
#     - Invariants: min_value <= value <= max_value at all times,
#       including straight after set_range().
#
# class RandomLFO:
#   - update(self, dt: float) -> None:
#     - Side Effects: evaluates the five oscillators in dependency order.
#   - value (property) -> float:
#     - Invariants: min_value <= value <= max_value.

class LFO:
    """
    A sine oscillator remapped into a value range.

    Rate and range changes apply from the next update(). Between updates
    the held value is only pulled into a narrowed range, never recomputed.
    """
    def __init__(self, rate: float, min_value: float, max_value: float, phase: float = 0.0):
        self.rate = require_non_negative("LFO rate", rate)
        self.min_value, self.max_value = require_ordered("LFO value", min_value, max_value)
        self.phase = require_finite("LFO phase", phase)
        self._value = self._compute()

    def _compute(self) -> float:
        unit = math.sin(self.phase) * 0.5 + 0.5
        return self.min_value + unit * (self.max_value - self.min_value)

    def update(self, dt: float) -> None:
        if not math.isfinite(dt):
            logging.debug(f"LFO ignoring non-finite dt {dt}.")
            return
        self.phase += self.rate * dt * TWO_PI
        # Rounding can land a hair outside the range for wide spans.
        self._value = min(max(self._compute(), self.min_value), self.max_value)

    @property
    def value(self) -> float:
        return self._value

    def get_value(self) -> float:
        return self._value

    def set_rate(self, rate: float) -> None:
        self.rate = require_non_negative("LFO rate", rate)

    def set_range(self, min_value: float, max_value: float) -> None:
        self.min_value, self.max_value = require_ordered("LFO value", min_value, max_value)
        self._value = min(max(self._value, self.min_value), self.max_value)

    def set_min_value(self, min_value: float) -> None:
        self.set_range(min_value, self.max_value)

    def set_max_value(self, max_value: float) -> None:
        self.set_range(self.min_value, max_value)

    def reset(self) -> None:
        """Rewinds the phase. The held value changes on the next update()."""
        self.phase = 0.0


class RandomLFO:
    """
    Five LFOs wired as a feed-forward modulation graph.

    rate_lfo_rate_lfo  -> rate_lfo.rate
    value_lfo_rate_lfo -> value_lfo.rate
    rate_lfo           -> lfo.rate
    value_lfo          -> centre of lfo's working band
    lfo                -> output

    The working band is +/- 10% of the value range around the value LFO,
    cut back to [min_value, max_value] so the output never leaves it.
    """
    def __init__(
        self,
        min_rate: float,
        max_rate: float,
        min_value: float,
        max_value: float,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Args:
            min_rate (float): Lowest rate of the output oscillator (Hz).
            max_rate (float): Highest rate of the output oscillator (Hz).
            min_value (float): Lower bound of the output.
            max_value (float): Upper bound of the output.
            rng (Optional[np.random.Generator]): When given, the five
                oscillators start at random phases; otherwise all start at 0.
        """
        self.min_rate, self.max_rate = require_ordered("RandomLFO rate", min_rate, max_rate)
        require_non_negative("RandomLFO minimum rate", self.min_rate)
        self.min_value, self.max_value = require_ordered("RandomLFO value", min_value, max_value)

        self.rate_lfo_min_rate, self.rate_lfo_max_rate = RANDOM_LFO_SUB_RATE_RANGE
        self.value_lfo_min_rate, self.value_lfo_max_rate = RANDOM_LFO_SUB_RATE_RANGE

        phases = np.zeros(5) if rng is None else rng.uniform(0.0, TWO_PI, size=5)

        self.rate_lfo_rate_lfo = LFO(
            RANDOM_LFO_RATE_LFO_RATE, self.rate_lfo_min_rate, self.rate_lfo_max_rate, phases[0]
        )
        self.value_lfo_rate_lfo = LFO(
            RANDOM_LFO_VALUE_LFO_RATE, self.value_lfo_min_rate, self.value_lfo_max_rate, phases[1]
        )
        self.rate_lfo = LFO(
            (self.rate_lfo_min_rate + self.rate_lfo_max_rate) / 2.0,
            self.min_rate, self.max_rate, phases[2]
        )
        self.value_lfo = LFO(
            (self.value_lfo_min_rate + self.value_lfo_max_rate) / 2.0,
            self.min_value, self.max_value, phases[3]
        )
        centre = (self.min_value + self.max_value) / 2.0
        self.lfo = LFO((self.min_rate + self.max_rate) / 2.0, centre, centre, phases[4])

        logging.debug(
            f"RandomLFO created: rate [{self.min_rate}, {self.max_rate}], "
            f"value [{self.min_value}, {self.max_value}]."
        )

    def update(self, dt: float) -> None:
        """Advances the whole graph by dt seconds, leaves first."""
        if not math.isfinite(dt):
            return
        self.rate_lfo_rate_lfo.update(dt)
        self.value_lfo_rate_lfo.update(dt)

        self.rate_lfo.set_rate(self.rate_lfo_rate_lfo.value)
        self.value_lfo.set_rate(self.value_lfo_rate_lfo.value)

        self.rate_lfo.update(dt)
        self.value_lfo.update(dt)

        self.lfo.set_rate(self.rate_lfo.value)

        centre = self.value_lfo.value
        band = (self.max_value - self.min_value) * RANDOM_LFO_BAND_RATIO
        self.lfo.set_range(max(centre - band, self.min_value), min(centre + band, self.max_value))

        self.lfo.update(dt)

    @property
    def value(self) -> float:
        return self.lfo.value

    def get_value(self) -> float:
        return self.lfo.value

    @property
    def current_rate(self) -> float:
        return self.lfo.rate

    @property
    def current_rate_lfo_rate(self) -> float:
        return self.rate_lfo.rate

    @property
    def current_value_lfo_rate(self) -> float:
        return self.value_lfo.rate

    # --- Setters keep every phase so the output does not jump ---

    def set_rate_range(self, min_rate: float, max_rate: float) -> None:
        min_rate, max_rate = require_ordered("RandomLFO rate", min_rate, max_rate)
        require_non_negative("RandomLFO minimum rate", min_rate)
        self.min_rate, self.max_rate = min_rate, max_rate
        self.rate_lfo.set_range(min_rate, max_rate)

    def set_value_range(self, min_value: float, max_value: float) -> None:
        self.min_value, self.max_value = require_ordered("RandomLFO value", min_value, max_value)
        self.value_lfo.set_range(self.min_value, self.max_value)
        # Pull the held output into the new bounds as well.
        low = max(self.lfo.min_value, self.min_value)
        high = min(self.lfo.max_value, self.max_value)
        if low > high:
            low = high = min(max(self.lfo.value, self.min_value), self.max_value)
        self.lfo.set_range(low, high)

    def set_rate_lfo_rate_range(self, min_rate: float, max_rate: float) -> None:
        min_rate, max_rate = require_ordered("rate LFO rate", min_rate, max_rate)
        require_non_negative("rate LFO minimum rate", min_rate)
        self.rate_lfo_min_rate, self.rate_lfo_max_rate = min_rate, max_rate
        self.rate_lfo_rate_lfo.set_range(min_rate, max_rate)

    def set_value_lfo_rate_range(self, min_rate: float, max_rate: float) -> None:
        min_rate, max_rate = require_ordered("value LFO rate", min_rate, max_rate)
        require_non_negative("value LFO minimum rate", min_rate)
        self.value_lfo_min_rate, self.value_lfo_max_rate = min_rate, max_rate
        self.value_lfo_rate_lfo.set_range(min_rate, max_rate)

    def reset(self) -> None:
        for oscillator in (self.rate_lfo_rate_lfo, self.value_lfo_rate_lfo,
                           self.rate_lfo, self.value_lfo, self.lfo):
            oscillator.reset()
