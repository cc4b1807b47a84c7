from patternchat.core.think import strip_think_blocks


def test_strip_single_block():
    text = "<think>internal reasoning</think>\n\nThe answer is 42."
    assert strip_think_blocks(text) == "The answer is 42."


def test_strip_multiple_blocks_non_greedy():
    text = "<think>a</think>First <think>b</think>second"
    assert strip_think_blocks(text) == "First second"


def test_multiline_block_removed():
    text = "<think>\nline one\nline two\n</think>\nDone"
    assert strip_think_blocks(text) == "Done"


def test_unterminated_block_left_intact():
    text = "Answer <think>never closed"
    assert strip_think_blocks(text) == "Answer <think>never closed"


def test_unterminated_after_valid_block():
    text = "<think>x</think>keep <think>dangling"
    assert strip_think_blocks(text) == "keep <think>dangling"


def test_custom_tags():
    text = "[[r]]hidden[[/r]]  visible"
    assert strip_think_blocks(text, "[[r]]", "[[/r]]") == "visible"


def test_tags_are_case_sensitive():
    text = "<THINK>shout</THINK> ok"
    assert strip_think_blocks(text) == "<THINK>shout</THINK> ok"


def test_empty_input():
    assert strip_think_blocks("") == ""
