"""Tests for the token estimator and ContextCompressor."""

from zenchat.compressor import ContextCompressor, estimate_tokens
from zenchat.models import Conversation, Role


def _make_conversation(n: int, size: int = 20) -> Conversation:
    """Greeting plus n alternating user/assistant messages of `size` chars each."""
    conv = Conversation()
    conv.reset("greeting")
    for i in range(n):
        role = Role.USER if i % 2 == 0 else Role.ASSISTANT
        conv.append(role, f"{i:02d}" + "x" * (size - 2))
    return conv


def test_estimate_tokens():
    assert estimate_tokens("") == 0
    assert estimate_tokens("ab") == 1
    assert estimate_tokens("abc") == 2
    assert estimate_tokens("a" * 1000) == 500


def test_estimate_tokens_monotonic():
    counts = [estimate_tokens("x" * n) for n in range(50)]
    assert counts == sorted(counts)


def test_compress_keeps_first_and_recent():
    conv = _make_conversation(10)
    original = list(conv.messages)
    result = ContextCompressor(keep_recent=4).compress(conv)

    assert len(result) == 6
    assert result[0] is original[0]
    assert result[-4:] == original[-4:]
    assert result[1].role == Role.SUMMARY


def test_compress_does_not_mutate_input():
    conv = _make_conversation(10)
    before = list(conv.messages)
    ContextCompressor().compress(conv)
    assert conv.messages == before


def test_summary_format():
    conv = Conversation()
    conv.reset("greeting")
    conv.append(Role.USER, "short question")
    conv.append(Role.ASSISTANT, "y" * 150)
    for i in range(4):
        conv.append(Role.USER, f"recent {i}")

    summary = ContextCompressor(summary_chars=100).compress(conv)[1]
    lines = summary.content.split("\n")
    assert lines[0] == "user: short question"
    assert lines[1] == "assistant: " + "y" * 100 + "..."


def test_compress_noop_when_short():
    compressor = ContextCompressor(keep_recent=4)
    for n in range(0, 5):
        conv = _make_conversation(n)
        assert compressor.compress(conv) == conv.messages


def test_compress_bounded_regardless_of_length():
    compressor = ContextCompressor(keep_recent=4)
    for n in (6, 20, 200):
        assert len(compressor.compress(_make_conversation(n))) == 6


def test_summary_gets_fresh_id():
    conv = _make_conversation(10)
    top = max(m.id for m in conv.messages)
    summary = ContextCompressor().compress(conv)[1]
    assert summary.id > top


def test_maybe_compress_under_threshold():
    conv = _make_conversation(10, size=2)
    compressor = ContextCompressor(max_tokens=128_000)
    budget = compressor.maybe_compress(conv)
    assert len(conv) == 11
    assert budget.usage_percent == 0


def test_maybe_compress_over_threshold():
    conv = _make_conversation(10, size=20)
    compressor = ContextCompressor(max_tokens=100, threshold=0.7)
    assert compressor.budget(conv).usage_ratio > 0.7

    compressor.maybe_compress(conv)
    assert len(conv) == 6
    assert conv.messages[1].role == Role.SUMMARY


def test_maybe_compress_skips_short_conversations():
    conv = _make_conversation(5, size=400)
    compressor = ContextCompressor(max_tokens=100, threshold=0.7, min_length=6)
    compressor.maybe_compress(conv)
    assert len(conv) == 6
    assert all(m.role != Role.SUMMARY for m in conv.messages)


def test_maybe_compress_settles():
    """Once compressed to the minimum length, repeated passes change nothing."""
    conv = _make_conversation(20, size=40)
    compressor = ContextCompressor(max_tokens=10, threshold=0.7)
    compressor.maybe_compress(conv)
    after_first = list(conv.messages)
    compressor.maybe_compress(conv)
    assert conv.messages == after_first
