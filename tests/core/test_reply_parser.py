from relay_bot.core.reply_parser import parse_reply
from relay_bot.core.types import ReplyKind


def test_image_reference_with_caption():
    reply = parse_reply("Here ![cat](http://x/a.png) enjoy")
    assert reply.kind == ReplyKind.IMAGE
    assert reply.url == "http://x/a.png"
    assert reply.caption == "Here  enjoy"


def test_image_reference_alone_has_empty_caption():
    reply = parse_reply("![chart](https://example.com/chart.webp)")
    assert reply.kind == ReplyKind.IMAGE
    assert reply.caption == ""


def test_file_reference():
    reply = parse_reply("See [report](http://x/b.pdf)")
    assert reply.kind == ReplyKind.FILE
    assert reply.url == "http://x/b.pdf"
    assert reply.caption == ""


def test_plain_text():
    reply = parse_reply("Just text.")
    assert reply.kind == ReplyKind.TEXT
    assert reply.url == ""
    assert reply.text == "Just text."


def test_image_wins_over_earlier_file_reference():
    reply = parse_reply("[doc](http://x/d.pdf) and ![pic](http://x/p.png)")
    assert reply.kind == ReplyKind.IMAGE
    assert reply.url == "http://x/p.png"
    assert reply.caption == "[doc](http://x/d.pdf) and"


def test_only_first_reference_is_used():
    reply = parse_reply("[one](http://x/1.mp3) [two](http://x/2.mp3)")
    assert reply.url == "http://x/1.mp3"


def test_reference_without_url_is_plain_text():
    assert parse_reply("Click [here]() to continue").kind == ReplyKind.TEXT
