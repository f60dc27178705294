import pytest

# A single LandTrendr pixel, 2000-2005, in the LandTrendr orientation (loss is
# positive). Vertices in 2000, 2001, 2002 and 2005 give three segments:
# a flat one, a one year loss of 300 and a three year recovery of 300.
LT_YEARS = [2000.0, 2001.0, 2002.0, 2003.0, 2004.0, 2005.0]
LT_SOURCE = [110.0, 90.0, 420.0, 280.0, 210.0, 95.0]
LT_FITTED = [100.0, 100.0, 400.0, 300.0, 200.0, 100.0]
LT_IS_VERTEX = [1.0, 1.0, 1.0, 0.0, 0.0, 1.0]
LT_RMSE = 50.0


@pytest.fixture
def lt_array():
    return [list(LT_YEARS), list(LT_SOURCE), list(LT_FITTED), list(LT_IS_VERTEX)]


@pytest.fixture(scope="session")
def ee_ready():
    """
    Ensure EE is initialized and credentials are available.
    If not authenticated, skip the tests that need it.
    """
    ee = pytest.importorskip("ee")
    try:
        ee.Initialize()
        # A lightweight call to confirm the token works
        ee.Number(1).getInfo()
    except Exception as e:
        pytest.skip(f"Earth Engine not authenticated or unreachable: {e}")
    return ee


@pytest.fixture
def lt_image(ee_ready, lt_array):
    ee = ee_ready
    return (
        ee.Image(ee.Array(lt_array))
        .rename("LandTrendr")
        .addBands(ee.Image.constant(LT_RMSE).rename("rmse"))
    )
