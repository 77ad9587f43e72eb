"""Tests for narrative_engine.transcript."""

import pytest

from narrative_engine.models import (
    BlockKind,
    CandidateAction,
    FeelGoodOutcome,
    LineKind,
    NarrationBlock,
)
from narrative_engine.transcript import (
    CONTINUATION_INDENT,
    SEPARATOR_CHAR,
    TranscriptBuffer,
    render_blocks,
    wrap_text,
)

from stubs import cave_block, cave_thinking


def _thinking_block(actions=None) -> NarrationBlock:
    result = cave_thinking()
    return NarrationBlock(
        kind=BlockKind.THINKING, skill="Intuition", text=result.reasoning,
        actions=tuple(actions if actions is not None else result.actions),
    )


class TestWrapText:
    def test_short_text_single_line(self) -> None:
        assert wrap_text("The stream runs clear.", 40) == ["The stream runs clear."]

    def test_wraps_on_words(self) -> None:
        assert wrap_text("one two three four", 9) == ["one two", "three", "four"]

    def test_no_line_exceeds_width(self) -> None:
        text = "Moss covers the fallen log and small ferns grow from every crack in its bark."
        assert all(len(line) <= 20 for line in wrap_text(text, 20))

    def test_paragraph_breaks_kept(self) -> None:
        assert wrap_text("first\n\nsecond", 20) == ["first", "", "second"]

    def test_long_word_split(self) -> None:
        assert wrap_text("abcdefghij", 4) == ["abcd", "efgh", "ij"]

    def test_first_width(self) -> None:
        assert wrap_text("aa bb cc", 5, first_width=2) == ["aa", "bb cc"]

    def test_empty(self) -> None:
        assert wrap_text("", 10) == [""]

    def test_bad_width(self) -> None:
        with pytest.raises(ValueError):
            wrap_text("x", 0)


class TestRenderBlocks:
    def test_observation_block_layout(self) -> None:
        lines = render_blocks([cave_block()], 91)
        assert [line.kind for line in lines] == [
            LineKind.HEADER, LineKind.EMPTY, LineKind.CONTENT, LineKind.EMPTY,
        ]
        assert lines[0].text == "[OBSERVATION]"
        assert lines[2].keywords == ("cave",)

    def test_actions_prefixed_and_indexed(self) -> None:
        lines = render_blocks([_thinking_block()], 91)
        actions = [line for line in lines if line.kind == LineKind.ACTION]
        assert actions[0].text == "Climbing (2): try to climb down into the cave"
        assert [line.action_index for line in actions] == [0, 1]
        assert lines[-1].kind == LineKind.EMPTY

    def test_wrapped_action_shares_index(self) -> None:
        action = CandidateAction(
            text="try to follow the narrow ledge around the waterfall without looking down",
            skill_id="climbing", skill_name="Climbing", skill_level=2, outcome=FeelGoodOutcome(),
        )
        lines = render_blocks([_thinking_block([action])], 30)
        actions = [line for line in lines if line.kind == LineKind.ACTION]
        assert len(actions) > 1
        assert {line.action_index for line in actions} == {0}
        assert all(line.text.startswith(CONTINUATION_INDENT) for line in actions[1:])
        assert all(len(line.text) <= 30 for line in actions)

    def test_indices_continue_across_blocks(self) -> None:
        lines = render_blocks([_thinking_block(), cave_block(), _thinking_block()], 91)
        indices = [line.action_index for line in lines if line.kind == LineKind.ACTION]
        assert indices == [0, 1, 2, 3]

    def test_outcome_block_lines(self) -> None:
        block = NarrationBlock(kind=BlockKind.OUTCOME, skill="Climbing", text="[SUCCESS] You drop in.")
        lines = render_blocks([block], 91)
        assert lines[2].kind == LineKind.OUTCOME
        assert lines[2].block_kind == BlockKind.OUTCOME


class TestTranscriptBuffer:
    def test_append_updates_lines(self) -> None:
        buffer = TranscriptBuffer()
        buffer.append(cave_block())
        assert buffer.live_line_count == 4
        buffer.append(_thinking_block())
        assert buffer.live_line_count == 11
        assert buffer.action_count == 2

    def test_freeze_moves_live_to_history(self) -> None:
        buffer = TranscriptBuffer(width=40)
        buffer.extend([cave_block(), _thinking_block()])
        live = buffer.live_line_count
        buffer.freeze_to_history()

        assert buffer.history_line_count == live + 2
        assert buffer.live_line_count == 0
        assert buffer.blocks == ()
        assert all(line.is_history for line in buffer.lines)
        assert all(line.keywords is None and line.action_index is None for line in buffer.lines)
        assert buffer.lines[-2].text == SEPARATOR_CHAR * 40
        assert buffer.lines[-1].kind == LineKind.EMPTY
        assert buffer.scroll_offset == buffer.history_line_count

    def test_freeze_empty_is_noop(self) -> None:
        buffer = TranscriptBuffer()
        buffer.append(cave_block())
        buffer.freeze_to_history()
        before = buffer.history_line_count
        buffer.freeze_to_history()
        assert buffer.history_line_count == before

    def test_history_kept_while_new_live_added(self) -> None:
        buffer = TranscriptBuffer()
        buffer.append(cave_block())
        buffer.freeze_to_history()
        buffer.append(_thinking_block())
        lines = buffer.lines
        assert lines[0].is_history
        assert not lines[-1].is_history
        actions = [line for line in lines if line.kind == LineKind.ACTION]
        assert [line.action_index for line in actions] == [0, 1]

    def test_offset_parked_past_history_until_next_block(self) -> None:
        buffer = TranscriptBuffer()
        buffer.append(cave_block())
        buffer.freeze_to_history()
        assert buffer.scroll_offset == buffer.total_lines
        buffer.scroll_down(3)
        assert buffer.scroll_offset == buffer.total_lines
        assert buffer.visible_lines(5) == [buffer.lines[-1]]

        buffer.append(cave_block())
        assert buffer.visible_lines(1)[0].text == "[OBSERVATION]"
        assert not buffer.visible_lines(1)[0].is_history

    def test_clear(self) -> None:
        buffer = TranscriptBuffer()
        buffer.append(cave_block())
        buffer.freeze_to_history()
        buffer.clear()
        assert buffer.total_lines == 0
        assert buffer.scroll_offset == 0


class TestScrolling:
    @pytest.fixture
    def buffer(self) -> TranscriptBuffer:
        buffer = TranscriptBuffer()
        buffer.extend([cave_block(), _thinking_block()])  # 11 lines
        return buffer

    def test_scroll_bounds(self, buffer: TranscriptBuffer) -> None:
        buffer.scroll_up(5)
        assert buffer.scroll_offset == 0
        assert not buffer.can_scroll_up()
        buffer.scroll_down(100)
        assert buffer.scroll_offset == 10
        assert buffer.can_scroll_up()

    def test_scroll_to_bottom(self, buffer: TranscriptBuffer) -> None:
        buffer.scroll_to_bottom(4)
        assert buffer.scroll_offset == 7
        assert not buffer.can_scroll_down(4)
        assert [line.kind for line in buffer.visible_lines(4)][-1] == LineKind.EMPTY

    def test_visible_lines_window(self, buffer: TranscriptBuffer) -> None:
        buffer.scroll_down(2)
        visible = buffer.visible_lines(3)
        assert visible == buffer.lines[2:5]
        assert buffer.can_scroll_down(3)
