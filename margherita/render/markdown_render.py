from textwrap import dedent

import marko

from margherita.config.logger import get_logger
from margherita.util.thread_utils import synchronized

log = get_logger(__name__)


MARKDOWN_EXTENSIONS = ["gfm", "footnote"]
"""
GitHub-flavored markdown brings strikethrough, tables, and task lists. Footnotes are
a separate extension.
"""


preview_markdown = marko.Markdown(extensions=MARKDOWN_EXTENSIONS)


@synchronized
def markdown_to_html(markdown: str, converter: marko.Markdown = preview_markdown) -> str:
    """
    Convert Markdown to HTML. Markdown may contain embedded HTML. Malformed input never
    fails; it degrades to literal text.
    """
    # Converters keep parse state, so calls are serialized.
    return converter.convert(markdown)


## Tests


def test_markdown_to_html_basics():
    html = markdown_to_html("**bold** and ~~gone~~")
    assert "<strong>bold</strong>" in html
    assert "<del>gone</del>" in html


def test_markdown_to_html_extensions():
    markdown = dedent(
        """
        # Plan

        | Task | Owner |
        | ---- | ----- |
        | Dough | Ana |

        - [x] Buy flour
        - [ ] Buy basil

        Tomatoes first.[^1]

        [^1]: San Marzano, ideally.
        """
    )
    html = markdown_to_html(markdown)

    assert "<h1>Plan</h1>" in html
    assert "<table>" in html
    assert "<td>Dough</td>" in html
    assert "checkbox" in html
    assert "San Marzano, ideally." in html
    assert "footnote" in html


def test_markdown_to_html_malformed():
    html = markdown_to_html("**unclosed and [broken](link\n\n| just | a pipe")
    assert "unclosed" in html
    assert markdown_to_html("") == ""
