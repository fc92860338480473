import pytest
import tenacity

from skinbuy_monitor import scraper
from skinbuy_monitor.parsers import parse_items
from skinbuy_monitor.scraper import FetchFailed, SectionNotFound, fetch_page, section_lines

URL = "http://shop.test/skinbuy.html"


@pytest.fixture
def no_retry_wait(monkeypatch):
    monkeypatch.setattr(scraper._get.retry, "wait", tenacity.wait_none())


def test_section_lines_yields_text_nodes_in_order(make_page):
    html = make_page(("AK-47 | Redline (Field-Tested) #123", "販売価格: 15,000円"))

    assert list(section_lines(html)) == [
        "★",
        "AK-47 | Redline (Field-Tested) #123",
        "\n",
        "販売価格: 15,000円",
    ]


def test_section_lines_feed_the_parser(make_page):
    html = make_page(
        ("AK-47 | Redline (Field-Tested) #123", "販売価格: 15,000円"),
        ("(売約済み) #77", "販売価格: 3,000円"),
        ("StatTrak AWP | Asiimov (Factory New) #45", "販売価格: 40,000円"),
    )

    sections = parse_items(section_lines(html))

    assert [s.order_id for s in sections] == [123, 77, 45]
    assert sections[2].listing.is_stattrak is True


def test_markers_outside_the_section_are_ignored(make_page):
    assert list(section_lines(make_page())) == []


def test_missing_section_raises():
    with pytest.raises(SectionNotFound):
        section_lines("<html><body><p>maintenance</p></body></html>")


def test_fetch_page_returns_body(make_session):
    session = make_session(text="<html></html>")

    assert fetch_page(URL, session=session) == "<html></html>"
    assert session.requested == [URL]


def test_fetch_page_rejects_non_200(make_session):
    session = make_session(status_code=404)

    with pytest.raises(FetchFailed) as exc_info:
        fetch_page(URL, session=session)
    assert exc_info.value.status == 404
    assert session.requested == [URL]


def test_fetch_page_server_error_after_retries(make_session, no_retry_wait):
    session = make_session(status_code=503)

    with pytest.raises(FetchFailed) as exc_info:
        fetch_page(URL, session=session)
    assert exc_info.value.status == 503
    assert exc_info.value.url == URL
    assert len(session.requested) == 5
