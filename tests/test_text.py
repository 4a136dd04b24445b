import hashlib

from app.trekker.media import cleanup_hosted_asset, sign_params
from app.trekker.text import normalize_rich_html, slugify, strip_html_tags, strip_p_from_list_items
from app.trekker.validation import parse_object_list


def test_strip_html_tags_drops_scripts_and_decodes_entities():
    html = "<p>Fish &amp; Chips</p><script>alert('x')</script><style>p{}</style>&#8377;&#x20AC; &nbsp;done"
    assert strip_html_tags(html) == "Fish & Chips₹€ done"


def test_strip_html_tags_does_not_double_decode():
    assert strip_html_tags("&amp;lt;b&amp;gt;") == "&lt;b&gt;"


def test_strip_html_tags_empty():
    assert strip_html_tags(None) == ""
    assert strip_html_tags("<p>   </p>") == ""


def test_strip_p_from_list_items():
    html = '<ul><li class="x"><p>One</p></li><li><p>Two</p> <p>Three</p></li></ul><p>Outside</p>'
    assert strip_p_from_list_items(html) == '<ul><li class="x">One</li><li>Two<br>Three</li></ul><p>Outside</p>'


def test_normalize_rich_html_blanks_empty_editor_output():
    assert normalize_rich_html("<p><br></p>") is None
    assert normalize_rich_html(None) is None
    assert normalize_rich_html(" <p>Hi</p> ") == "<p>Hi</p>"


def test_slugify():
    assert slugify("Har Ki Dun  Trek (2026)") == "har-ki-dun-trek-2026"
    assert slugify("--Already-slugged--") == "already-slugged"
    assert slugify("") == ""


def test_sign_params_sorts_keys():
    expected = hashlib.sha1(b"folder=packages&public_id=pdf_1&timestamp=100secret").hexdigest()
    assert sign_params({"timestamp": "100", "public_id": "pdf_1", "folder": "packages"}, "secret") == expected


def test_cleanup_without_public_id_is_a_no_op():
    # No client call happens for an empty id
    assert cleanup_hosted_asset(None, None) is True
    assert cleanup_hosted_asset(None, "") is True


def test_parse_object_list():
    items, errors = parse_object_list(
        [{"heading": " Day 1 ", "description": "Arrive", "extra": "dropped"}, "oops", {"description": "no heading"}],
        "Itinerary",
        ("heading", "description"),
        required=("heading",),
    )
    assert items == [{"heading": "Day 1", "description": "Arrive"}]
    assert errors == [
        "Itinerary item 2 must be an object with heading, description.",
        "Itinerary item 3 is missing heading.",
    ]

    assert parse_object_list(None, "Itinerary", ("heading",)) == ([], [])
    assert parse_object_list({"heading": "x"}, "Itinerary", ("heading",)) == ([], ["Itinerary must be a list."])


def test_parse_object_list_choices():
    _, errors = parse_object_list(
        [{"icon": "rocket", "title": "Fast"}],
        "Items",
        ("icon", "title"),
        choices={"icon": ("itinerary", "support")},
    )
    assert errors == ["Items item 1 has an invalid icon: must be one of itinerary, support."]
