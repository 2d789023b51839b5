"""Unit tests for the document sanitizer."""

from bs4 import BeautifulSoup

from page_snapshot.capture.sanitizer import DocumentSanitizer, rel_values


def _soup(html):
    return BeautifulSoup(html, 'html.parser')


class TestDocumentSanitizer:
    """Tests for DocumentSanitizer."""

    def test_scripts_are_removed(self):
        soup = _soup(
            '<html><head><script src="a.js"></script></head>'
            '<body><p>Text</p><script>alert(1)</script><noscript>No JS</noscript></body></html>'
        )

        stats = DocumentSanitizer().sanitize(soup)

        assert soup.find('script') is None
        assert soup.find('noscript') is None
        assert soup.find('p').get_text() == "Text"
        assert stats['scripts'] == 3

    def test_event_handlers_are_removed(self):
        soup = _soup('<body onload="init()"><button onClick="go()" class="btn">Go</button></body>')

        DocumentSanitizer().sanitize(soup)

        assert 'onload' not in soup.body.attrs
        button = soup.find('button')
        assert 'onClick' not in button.attrs
        assert 'onclick' not in button.attrs
        assert button['class'] == ['btn']

    def test_javascript_links_are_removed(self):
        soup = _soup(
            '<a href="javascript:alert(1)">Bad</a>'
            '<a href="  JavaScript:void(0)">Also bad</a>'
            '<a href="/about">Good</a>'
            '<form action="javascript:submit()"></form>'
        )

        DocumentSanitizer().sanitize(soup)

        links = soup.find_all('a')
        assert 'href' not in links[0].attrs
        assert 'href' not in links[1].attrs
        assert links[2]['href'] == "/about"
        assert 'action' not in soup.find('form').attrs

    def test_external_resources_are_removed(self):
        soup = _soup(
            '<head>'
            '<link rel="stylesheet" href="a.css">'
            '<link rel="preload" href="font.woff2" as="font">'
            '<link rel="dns-prefetch" href="//cdn.example.com">'
            '<link rel="icon" href="favicon.ico">'
            '<style>body { color: red }</style>'
            '</head>'
        )

        stats = DocumentSanitizer().sanitize(soup)

        links = soup.find_all('link')
        assert len(links) == 1
        assert rel_values(links[0]) == {'icon'}
        assert soup.find('style') is None
        assert stats['external_resources'] == 4

    def test_clean_document_is_untouched(self):
        html = '<html><body><p class="intro">Hello</p><img src="a.png" alt="A"></body></html>'
        soup = _soup(html)

        stats = DocumentSanitizer().sanitize(soup)

        assert str(soup) == str(_soup(html))
        assert stats == {'scripts': 0, 'attributes': 0, 'external_resources': 0}

    def test_sanitize_markup(self):
        result = DocumentSanitizer().sanitize_markup(
            '<html><body><script>x()</script><p onclick="y()">Frame</p></body></html>'
        )

        assert '<script' not in result
        assert 'onclick' not in result
        assert 'Frame' in result


class TestRelValues:
    """Tests for rel attribute parsing."""

    def test_multiple_tokens(self):
        link = _soup('<link rel="Preload StyleSheet" href="a.css">').find('link')
        assert rel_values(link) == {'preload', 'stylesheet'}

    def test_missing_rel(self):
        link = _soup('<link href="a.css">').find('link')
        assert rel_values(link) == set()
