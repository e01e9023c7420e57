import pytest
from bs4 import BeautifulSoup

from newsletter_builder.newsletters import BrandStyle


@pytest.fixture
def style():
    return BrandStyle(
        name="Test Summary",
        site_url="https://www.example.com",
        accent="#123456",
        heading_font="Serif",
        body_font="Arial",
    )


@pytest.fixture
def parse():
    return lambda html: BeautifulSoup(html, "html.parser")
