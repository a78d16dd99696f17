import pytest
from hvacsim.air_flow import AirNetwork
from hvacsim.system import SolverContext


@pytest.fixture
def network():
    return AirNetwork()


@pytest.fixture
def context(network):
    return SolverContext(network)
