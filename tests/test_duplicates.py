"""Tests for duplicate handling at the destination."""

from pathlib import Path
from unittest.mock import patch

import pytest

from sdcard_importer.duplicates import (
    DuplicateAction,
    DuplicateDecision,
    DuplicateResolver,
    prompt_duplicate_decision,
    unique_target_path,
)


class RecordingSource:
    """Decision source returning queued answers and counting calls."""

    def __init__(self, *decisions):
        self.decisions = list(decisions)
        self.calls = []

    def __call__(self, source, target):
        self.calls.append((source, target))
        return self.decisions.pop(0)


class TestDuplicateResolver:
    """Test automatic and interactive policies."""

    def test_automatic_always_skips(self):
        source = RecordingSource()
        resolver = DuplicateResolver(interactive=False, decision_source=source)

        decision = resolver.resolve(Path('/card/a.mp4'), Path('/lib/a.mp4'))

        assert decision.action is DuplicateAction.SKIP
        assert source.calls == []

    def test_interactive_asks_each_time(self):
        source = RecordingSource(
            DuplicateDecision(DuplicateAction.OVERWRITE),
            DuplicateDecision(DuplicateAction.RENAME),
        )
        resolver = DuplicateResolver(interactive=True, decision_source=source)

        first = resolver.resolve(Path('a.mp4'), Path('t/a.mp4'))
        second = resolver.resolve(Path('b.mp4'), Path('t/b.mp4'))

        assert first.action is DuplicateAction.OVERWRITE
        assert second.action is DuplicateAction.RENAME
        assert len(source.calls) == 2

    def test_apply_to_all_is_sticky(self):
        source = RecordingSource(DuplicateDecision(DuplicateAction.RENAME, apply_to_all=True))
        resolver = DuplicateResolver(interactive=True, decision_source=source)

        decisions = [resolver.resolve(Path(f'{i}.mp4'), Path(f't/{i}.mp4')) for i in range(3)]

        assert {d.action for d in decisions} == {DuplicateAction.RENAME}
        assert len(source.calls) == 1
        assert resolver.decision_for_all.action is DuplicateAction.RENAME

    def test_reset_forgets_apply_to_all(self):
        source = RecordingSource(
            DuplicateDecision(DuplicateAction.SKIP, apply_to_all=True),
            DuplicateDecision(DuplicateAction.OVERWRITE),
        )
        resolver = DuplicateResolver(interactive=True, decision_source=source)
        resolver.resolve(Path('a.mp4'), Path('t/a.mp4'))

        resolver.reset()

        assert resolver.decision_for_all is None
        assert resolver.resolve(Path('b.mp4'), Path('t/b.mp4')).action is DuplicateAction.OVERWRITE

    def test_interactive_defaults_to_terminal_prompt(self):
        resolver = DuplicateResolver(interactive=True)
        assert resolver.decision_source is prompt_duplicate_decision


class TestUniqueTargetPath:
    def test_first_suffix(self, tmp_path):
        target = tmp_path / 'GX010001.MP4'
        target.write_bytes(b'x')

        assert unique_target_path(target) == tmp_path / 'GX010001_1.MP4'

    def test_smallest_free_suffix(self, tmp_path):
        for name in ('clip.mp4', 'clip_1.mp4', 'clip_2.mp4'):
            (tmp_path / name).write_bytes(b'x')

        assert unique_target_path(tmp_path / 'clip.mp4') == tmp_path / 'clip_3.mp4'

    def test_reserved_names_skipped(self, tmp_path):
        (tmp_path / 'clip.mp4').write_bytes(b'x')
        reserved = {tmp_path / 'clip_1.mp4'}

        assert unique_target_path(tmp_path / 'clip.mp4', reserved) == tmp_path / 'clip_2.mp4'


class TestPromptDuplicateDecision:
    """Test the terminal decision source."""

    @pytest.mark.parametrize('answer, action', [
        ('s', DuplicateAction.SKIP),
        ('O', DuplicateAction.OVERWRITE),
        ('r', DuplicateAction.RENAME),
    ])
    def test_single_answers(self, answer, action):
        with patch('sdcard_importer.duplicates.click.prompt', return_value=answer):
            decision = prompt_duplicate_decision(Path('/card/a.mp4'), Path('/lib/a.mp4'))

        assert decision == DuplicateDecision(action)

    def test_apply_to_all_asks_for_action(self):
        with patch('sdcard_importer.duplicates.click.prompt', side_effect=['a', 'r']) as prompt:
            decision = prompt_duplicate_decision(Path('/card/a.mp4'), Path('/lib/a.mp4'))

        assert decision == DuplicateDecision(DuplicateAction.RENAME, apply_to_all=True)
        assert prompt.call_count == 2
