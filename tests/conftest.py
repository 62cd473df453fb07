import pytest

from mips_pipeline_viewer.controller import CycleController
from mips_pipeline_viewer.ticker import Ticker

LW_T0 = "8d280000"     # lw  $8, 0($9)
ADD_USES_T0 = "010b5020"  # add $10, $8, $11
SUB_USES_ADD = "014b6022"  # sub $12, $10, $11

class ManualTicker(Ticker):
    """Ticker fired by hand from the test."""
    def __init__(self):
        super().__init__(1000)
        self.starts = 0
        self.cancels = 0
    def start(self, callback):
        self._callback = callback
        self.starts += 1
    def cancel(self):
        self._callback = None
        self.cancels += 1
    def fire(self, times=1):
        for _ in range(times):
            if self._callback is None:
                return
            self._callback()

@pytest.fixture
def ticker():
    return ManualTicker()

@pytest.fixture
def controller(ticker):
    return CycleController(ticker)
