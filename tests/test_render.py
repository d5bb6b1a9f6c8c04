import pytest

from adframe.render import TAG_HTML, TAG_IFRAME, TAG_SCRIPT, classify_tag, creative_document


@pytest.mark.parametrize(
    "tag, expected",
    [
        ('<iframe src="https://ads.example/creative?id=1" width="300"></iframe>', (TAG_IFRAME, "https://ads.example/creative?id=1")),
        ("<IFRAME width=300 SRC='https://x.example/a'></IFRAME>", (TAG_IFRAME, "https://x.example/a")),
        ("<script src='https://ads.example/tag.js'></script>", (TAG_SCRIPT, None)),
        ("  <div><script>document.write('ad')</script></div>", (TAG_SCRIPT, None)),
        ('<a href="https://example.com"><img src="https://cdn.example/b.png"></a>', (TAG_HTML, None)),
    ],
)
def test_classify_tag(tag, expected):
    assert classify_tag(tag) == expected


def test_creative_document_is_sized_to_the_ad():
    doc = creative_document("<b>hi</b>", 728, 90)
    assert doc.startswith("<!DOCTYPE html>")
    assert "width:728px;height:90px" in doc
    assert '<div id="ad" style="width:728px;height:90px;overflow:hidden;"><b>hi</b></div>' in doc
