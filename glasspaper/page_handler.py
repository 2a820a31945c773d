"""
Page Handler

Find the wallpaper of the day on a web page. The page is expected to contain either a bare
absolute image url as its entire visible text, or an <img> tag pointing at the image.

Only a single GET request is made for the page and nothing is retried here; if the page
can't be fetched or doesn't reference an image, the caller decides what happens next.
"""

import logging
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

URL_SCHEMES = ("http://", "https://")

HEAD_ONLY_TAGS = ["head", "title", "meta", "link"]


class ResolutionError(Exception):
    """
    Raised when an image url could not be resolved from a page.
    """

    pass


class FetchError(ResolutionError):
    """
    Raised when the page itself could not be retrieved (network error, timeout, bad status).
    """

    pass


class NoImageFound(ResolutionError):
    """
    Raised when the page was retrieved but no http(s) image url could be found on it.
    """

    pass


def is_web_url(candidate) -> bool:
    return bool(candidate) and candidate.startswith(URL_SCHEMES)


def visible_text(soup: BeautifulSoup) -> str:
    """
    Text a browser would render for the body of the document, whitespace normalized.

    html.parser only creates a body element for an explicit <body> tag. Without one, the
    whole document is used minus everything that belongs in <head>, which matches the
    implicit body a browser would build. Mutates soup.
    """

    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()

    if soup.body is not None:
        return " ".join(soup.body.stripped_strings).strip()

    for tag in soup(HEAD_ONLY_TAGS):
        tag.decompose()

    return " ".join(soup.stripped_strings).strip()


def first_image_src(soup: BeautifulSoup, page_url: str):
    """
    Absolute url of the first <img> in the body, resolved against <base href> when present
    and the page url otherwise. Returns None when there is no usable <img>.
    """

    root = soup.body if soup.body is not None else soup
    image = root.find("img", src=True)

    if image is None:
        return None

    base_url = page_url
    base = soup.find("base", href=True)
    if base is not None:
        base_url = urljoin(page_url, base["href"])

    return urljoin(base_url, image["src"].strip())


class UrlResolver:
    """
    Fetch an html page and pull a candidate image url out of it.

    Heuristics are tried in order and the first match wins:

        1) the visible body text, trimmed, if it starts with http:// or https://
        2) the resolved src of the first <img> element in the body
    """

    def __init__(self, timeout: float = 10, session: requests.Session = None):
        self.timeout = timeout
        self.session = session

    def _get(self, page_url: str) -> requests.Response:
        getter = self.session.get if self.session is not None else requests.get

        try:
            response = getter(page_url, timeout=(self.timeout, self.timeout))

        except requests.exceptions.RequestException as error:
            raise FetchError(f"Could not fetch {page_url}: {error}")

        try:
            response.raise_for_status()

        except requests.exceptions.HTTPError:
            raise FetchError(
                f"Something went wrong trying to access {page_url} (status code {response.status_code})"
            )

        # raise_for_status lets through redirects that weren't followed, e.g. 304
        if response.status_code >= 300:
            raise FetchError(
                f"Unexpected response from {page_url} (status code {response.status_code})"
            )

        return response

    def resolve(self, page_url: str) -> str:
        logger.debug("Fetching HTML from: %s", page_url)

        response = self._get(page_url)

        # r.url is the last effective url hit in a redirect sequence
        effective_url = response.url or page_url
        soup = BeautifulSoup(response.text, "html.parser")

        # looked up first, visible_text() strips <head> and its <base> from body-less pages
        src = first_image_src(soup, effective_url)

        text = visible_text(soup)
        if is_web_url(text):
            logger.debug("Potential image URL (from body text): %s", text)
            return text

        if is_web_url(src):
            logger.debug("Potential image URL (from first <img> tag): %s", src)
            return src

        raise NoImageFound(f"Could not find a valid image URL on {page_url}.")
