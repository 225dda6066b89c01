from datetime import date, datetime, timezone
from pathlib import Path
from textwrap import dedent

import pytest

from postbase import exc
from postbase.frontmatter import (
    body_line_offset,
    parse_front_matter,
    post_from_text,
    post_to_text,
    slugify,
    split_front_matter,
)
from postbase.value_objs import LintLevel

from .utils import make_post

PATH = Path("content/posts/test.md")

VALID_FRONT_MATTER = dedent(
    """\
    date = 2024-03-10T09:30:00Z
    draft = false
    title = "Hello, World"
    tags = ["meta"]
    slug = "hello-world"
    keywords = ["hello"]
    """
)


def front_matter_without(key: str) -> str:
    return "".join(
        line + "\n"
        for line in VALID_FRONT_MATTER.splitlines()
        if not line.startswith(f"{key} ")
    )


def test_split():
    text = "+++\ntitle = 'x'\n+++\n\nThe body\n"
    front_matter, body = split_front_matter(text, PATH)
    assert front_matter == "title = 'x'\n"
    assert body == "\nThe body\n"


def test_split__leading_bom_and_blank_lines():
    text = "\ufeff\n\n+++\ntitle = 'x'\n+++\nbody"
    front_matter, body = split_front_matter(text, PATH)
    assert front_matter == "title = 'x'\n"
    assert body == "body"


def test_split__no_front_matter():
    with pytest.raises(exc.MissingFrontMatterException) as e:
        split_front_matter("# Just markdown\n", PATH)
    assert e.value.path == PATH


def test_split__unterminated():
    with pytest.raises(exc.MissingFrontMatterException) as e:
        split_front_matter("+++\ntitle = 'x'\n\nbody\n", PATH)
    assert "never closed" in str(e.value)


def test_parse__valid():
    metadata = parse_front_matter(VALID_FRONT_MATTER, PATH)
    assert metadata["date"] == datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)
    assert metadata["draft"] is False
    assert metadata["tags"] == ["meta"]


@pytest.mark.parametrize("key", ["date", "draft", "title", "tags", "slug", "keywords"])
def test_parse__missing_required_field(key):
    with pytest.raises(exc.MissingFieldException) as e:
        parse_front_matter(front_matter_without(key), PATH)
    assert e.value.field == key
    assert str(e.value) == f"{PATH}: {key}: required field is missing"


def test_parse__optional_fields_can_be_left_out():
    metadata = parse_front_matter(VALID_FRONT_MATTER, PATH)
    assert "summary" not in metadata
    assert "author" not in metadata


def test_parse__date_as_string():
    front_matter = front_matter_without("date") + 'date = "2023-11-14"\n'
    metadata = parse_front_matter(front_matter, PATH)
    assert metadata["date"] == datetime(2023, 11, 14)


def test_parse__toml_local_date():
    front_matter = front_matter_without("date") + "date = 2023-11-14\n"
    metadata = parse_front_matter(front_matter, PATH)
    assert metadata["date"] == date(2023, 11, 14)


@pytest.mark.parametrize("bad_date", ['"last tuesday"', '"2023-13-45"', "20231114"])
def test_parse__unparseable_date(bad_date):
    front_matter = front_matter_without("date") + f"date = {bad_date}\n"
    with pytest.raises(exc.UnparseableDateException) as e:
        parse_front_matter(front_matter, PATH)
    assert e.value.field == "date"
    assert str(e.value).startswith(f"{PATH}: date: not a valid timestamp")


def test_parse__draft_must_be_boolean():
    front_matter = front_matter_without("draft") + 'draft = "yes"\n'
    with pytest.raises(exc.InvalidFieldException) as e:
        parse_front_matter(front_matter, PATH)
    assert e.value.field == "draft"


def test_parse__title_must_be_a_string():
    front_matter = front_matter_without("title") + "title = 5\n"
    with pytest.raises(exc.InvalidFieldException) as e:
        parse_front_matter(front_matter, PATH)
    assert e.value.field == "title"


def test_parse__empty_title():
    front_matter = front_matter_without("title") + 'title = "  "\n'
    with pytest.raises(exc.InvalidFieldException) as e:
        parse_front_matter(front_matter, PATH)
    assert e.value.field == "title"


@pytest.mark.parametrize("key", ["tags", "keywords"])
def test_parse__empty_list(key):
    front_matter = front_matter_without(key) + f"{key} = []\n"
    with pytest.raises(exc.InvalidFieldException) as e:
        parse_front_matter(front_matter, PATH)
    assert e.value.field == key
    assert "must not be empty" in str(e.value)


@pytest.mark.parametrize("key", ["tags", "keywords"])
def test_parse__duplicate_entries(key):
    front_matter = front_matter_without(key) + f'{key} = ["a", "b", "a"]\n'
    with pytest.raises(exc.InvalidFieldException) as e:
        parse_front_matter(front_matter, PATH)
    assert e.value.field == key
    assert "duplicate" in str(e.value)


def test_parse__tags_not_a_list():
    front_matter = front_matter_without("tags") + 'tags = "kafka"\n'
    with pytest.raises(exc.InvalidFieldException) as e:
        parse_front_matter(front_matter, PATH)
    assert e.value.field == "tags"


@pytest.mark.parametrize(
    "bad_slug", ["Hello-World", "hello world", "hello--world", "-hello", "héllo"]
)
def test_parse__slug_must_be_url_safe(bad_slug):
    front_matter = front_matter_without("slug") + f'slug = "{bad_slug}"\n'
    with pytest.raises(exc.InvalidFieldException) as e:
        parse_front_matter(front_matter, PATH)
    assert e.value.field == "slug"


def test_parse__invalid_toml():
    with pytest.raises(exc.FrontMatterSyntaxException) as e:
        parse_front_matter('title = "never closed\n', PATH)
    assert e.value.path == PATH
    assert "invalid TOML" in str(e.value)


def test_post_from_text():
    text = f"+++\n{VALID_FRONT_MATTER}+++\n\nSome *markdown*\n"
    post, issues = post_from_text(text, PATH)
    assert post.slug == "hello-world"
    assert post.body == "\nSome *markdown*\n"
    assert post.summary is None
    assert post.path == PATH
    assert issues == []


def test_post_from_text__keeps_unknown_fields():
    text = f'+++\n{VALID_FRONT_MATTER}series = "intro"\n[params]\nhero = "x.png"\n+++\n'
    post, _ = post_from_text(text, PATH)
    assert post.extra == {"series": "intro", "params": {"hero": "x.png"}}


def test_post_from_text__repairs_mojibake():
    text = (
        f"+++\n{VALID_FRONT_MATTER}"
        'summary = "It isnâ€™t hard"\n'
        "+++\n\nThere isnâ€™t one.\n"
    )
    post, issues = post_from_text(text, PATH, normalize_encoding=True)
    assert post.summary == "It isn’t hard"
    assert post.body == "\nThere isn’t one.\n"

    # reported even though repaired
    assert len(issues) == 2
    assert all(issue.level is LintLevel.WARNING for issue in issues)
    summary_issue, body_issue = issues
    assert summary_issue.field == "summary"
    assert body_issue.line == 11


def test_post_from_text__preserves_mojibake_when_asked():
    text = f"+++\n{VALID_FRONT_MATTER}+++\nisnâ€™t\n"
    post, issues = post_from_text(text, PATH, normalize_encoding=False)
    assert post.body == "isnâ€™t\n"
    assert len(issues) == 1


def test_body_line_offset():
    text = "\n+++\na = 1\nb = 2\n+++\nfirst body line\n"
    # blank, delimiter, two lines, delimiter
    assert body_line_offset(text) == 5


def test_round_trip():
    post = make_post()
    text = post_to_text(post)
    reparsed, _ = post_from_text(text, PATH)
    assert reparsed == post


def test_round_trip__awkward_values():
    post = make_post(
        title='What "healthy" means, and why it isn\'t simple',
        summary="Back\\slashes and ’curly’ quotes — and an em dash",
        tags=["kafka", "spring boot"],
        date=datetime(2023, 11, 14, 9, 30),
        author=None,
        extra={"series": "health checks", "weight": 3},
        body="```java\nclass X {}\n```\n",
    )
    reparsed, _ = post_from_text(post_to_text(post), PATH)
    assert reparsed == post


def test_round_trip__unprintable_characters():
    post = make_post(
        title="del\x7fchar",
        summary="non\xa0breaking and soft\xadhyphen",
        description="bell\x07 nul\x00 c1\x85 tag\U000e0001",
        tags=["tab\there", "line\nbreak"],
    )
    text = post_to_text(post)
    assert "\x7f" not in text
    reparsed, _ = post_from_text(text, PATH)
    assert reparsed == post


def test_round_trip__plain_date():
    post = make_post(date=date(2023, 11, 14))
    reparsed, _ = post_from_text(post_to_text(post), PATH)
    assert reparsed.date == date(2023, 11, 14)


def test_post_to_text__field_order():
    text = post_to_text(make_post())
    keys = [
        line.split("=")[0].strip()
        for line in text.splitlines()
        if "=" in line and not line.startswith("+++")
    ]
    assert keys == [
        "date",
        "draft",
        "title",
        "tags",
        "summary",
        "slug",
        "description",
        "keywords",
        "author",
    ]


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Hello, World", "hello-world"),
        ("What's New in 2.0?", "whats-new-in-2-0"),
        ("Writing a Custom Kafka Health Indicator in Spring Boot", "writing-a-custom-kafka-health-indicator-in-spring-boot"),
        ("Café Society", "cafe-society"),
        ("  --  ", ""),
    ],
)
def test_slugify(title, expected):
    assert slugify(title) == expected
