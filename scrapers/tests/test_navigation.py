# scrapers/tests/test_navigation.py
# Navigation retrier: session-fatal recovery, transient retry, fail-fast

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from scrapers.browser_session import SessionSupervisor
from scrapers.errors import ErrorKind, ScrapeError
from scrapers.navigation import navigate
from scrapers.tests.fakes import CLOSED_MESSAGE, FAST_RETRY, TEST_BROWSER, FakeWorld, profile_dom

URL = "https://example.com/p/1"


@pytest.fixture
def world():
    return FakeWorld({URL: profile_dom("X")})


@pytest.fixture
def supervisor(world, tmp_path):
    return SessionSupervisor(
        profile_dir=str(tmp_path / "profile"),
        launcher=world.launch,
        browser=TEST_BROWSER,
        retry=FAST_RETRY,
    )


def _navigate(supervisor, url=URL):
    async def scenario():
        async with supervisor.lease() as lease:
            await navigate(lease, url)
            return lease.page.url

    return asyncio.run(scenario())


def test_navigate_loads_page(supervisor, world):
    assert _navigate(supervisor) == URL
    assert world.gotos == [URL]
    assert world.launch_count == 1


def test_session_fatal_errors_recreate_and_retry(supervisor, world):
    world.goto_errors[URL] = [PlaywrightError(CLOSED_MESSAGE), PlaywrightError(CLOSED_MESSAGE)]

    assert _navigate(supervisor) == URL
    assert world.gotos == [URL, URL, URL]
    assert world.launch_count == 3


def test_session_fatal_errors_exhaust_budget(supervisor, world):
    world.goto_errors[URL] = [PlaywrightError(CLOSED_MESSAGE)] * 3

    with pytest.raises(ScrapeError, match="after 3 attempts: Target page") as excinfo:
        _navigate(supervisor)

    assert excinfo.value.kind is ErrorKind.SESSION_FATAL
    assert excinfo.value.url == URL
    assert isinstance(excinfo.value.__cause__, PlaywrightError)

    assert len(world.gotos) == 3
    assert world.launch_count == 3


def test_transient_error_retried_on_same_session(supervisor, world):
    world.goto_errors[URL] = [PlaywrightTimeoutError("Timeout 30000ms exceeded.")]

    assert _navigate(supervisor) == URL
    assert len(world.gotos) == 2
    assert world.launch_count == 1


def test_unclassified_error_raised_immediately(supervisor, world):
    missing = "https://nowhere.invalid/"

    with pytest.raises(ScrapeError, match="ERR_NAME_NOT_RESOLVED") as excinfo:
        _navigate(supervisor, missing)

    assert excinfo.value.kind is ErrorKind.UNKNOWN
    assert excinfo.value.url == missing

    assert world.gotos == [missing]
    assert world.launch_count == 1


def test_max_retries_is_per_call(supervisor, world):
    world.goto_errors[URL] = [PlaywrightError(CLOSED_MESSAGE)]

    async def scenario():
        async with supervisor.lease() as lease:
            with pytest.raises(ScrapeError):
                await navigate(lease, URL, max_retries=0)
            await navigate(lease, URL, max_retries=0)
            return lease.page.url

    assert asyncio.run(scenario()) == URL


def test_transient_errors_exhaust_budget_on_same_session(supervisor, world):
    world.goto_errors[URL] = [PlaywrightTimeoutError("Timeout 30000ms exceeded.")] * 3

    with pytest.raises(ScrapeError) as excinfo:
        _navigate(supervisor)

    assert excinfo.value.kind is ErrorKind.NAVIGATION_TRANSIENT
    assert len(world.gotos) == 3
    assert world.launch_count == 1


def test_failed_recreation_is_reported_as_session_fatal(supervisor, world):
    world.goto_errors[URL] = [PlaywrightError(CLOSED_MESSAGE)]

    async def scenario():
        async with supervisor.lease() as lease:
            world.launch_errors = [RuntimeError("chrome binary missing")]
            await navigate(lease, URL)

    with pytest.raises(ScrapeError, match="could not be recreated") as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.kind is ErrorKind.SESSION_FATAL
    assert str(excinfo.value.__cause__) == "chrome binary missing"
