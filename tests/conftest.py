"""
Pytest configuration and shared fixtures.
"""

import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from chuk_mcp_chordwheel.instruments import InstrumentRegistry
from chuk_mcp_chordwheel.models import Song


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def registry() -> InstrumentRegistry:
    """Registry with the built-in presets and no sample files."""
    return InstrumentRegistry()


@pytest.fixture
def one_bar_song() -> Song:
    """One section, one 4/4 measure: C major on each of four beats, 120 BPM."""
    return Song.from_yaml_dict(
        {
            "id": "one-bar",
            "title": "One Bar",
            "key": "C",
            "tempo": 120,
            "time_signature": [4, 4],
            "sections": [
                {
                    "id": "verse",
                    "name": "Verse",
                    "type": "verse",
                    "measures": [
                        {
                            "id": "m1",
                            "beats": [
                                {"id": f"b{i}", "duration": 1, "chord": "C"} for i in range(1, 5)
                            ],
                        }
                    ],
                }
            ],
        }
    )


@pytest.fixture
def two_section_song() -> Song:
    """Two sections of two 4/4 measures each, with a rest, at 120 BPM."""
    return Song.from_yaml_dict(
        {
            "id": "two-sections",
            "title": "Two Sections",
            "key": "G",
            "tempo": 120,
            "sections": [
                {
                    "id": "verse",
                    "name": "Verse",
                    "measures": [
                        {
                            "id": "v1",
                            "beats": [
                                {"id": "b1", "duration": 2, "chord": "G"},
                                {"id": "b2", "duration": 2, "chord": "Em7"},
                            ],
                        },
                        {
                            "id": "v2",
                            "beats": [
                                {"id": "b1", "duration": 2, "chord": "Cmaj7"},
                                {"id": "b2", "duration": 2, "chord": "D7"},
                            ],
                        },
                    ],
                },
                {
                    "id": "chorus",
                    "name": "Chorus",
                    "measures": [
                        {
                            "id": "c1",
                            "beats": [
                                {"id": "b1", "duration": 1, "chord": "C"},
                                {"id": "b2", "duration": 1, "chord": None},
                                {"id": "b3", "duration": 2, "chord": "D"},
                            ],
                        },
                        {
                            "id": "c2",
                            "beats": [{"id": "b1", "duration": 4, "chord": "G"}],
                        },
                    ],
                },
            ],
        }
    )
