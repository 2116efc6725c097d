"""
Song model - the read-only input to playback and export.

A Song contains:
- Global context (key, tempo, time signature)
- Sections (verse, chorus, ...) with an optional time signature override
- Measures of Beats; each beat holds a chord or is a rest

The engine never mutates a song: every model here is frozen, and
playback/export only walk it through iter_events().
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from fractions import Fraction
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from chuk_mcp_chordwheel.constants import (
    DEFAULT_TEMPO,
    ErrorMessages,
    SchemaVersion,
    SectionType,
)
from chuk_mcp_chordwheel.core.chord import (
    Chord,
    ChordQuality,
    chord_notes_or_fallback,
    parse_chord_symbol,
)
from chuk_mcp_chordwheel.core.key import Key
from chuk_mcp_chordwheel.core.rhythm import TimeSignature, to_fraction
from chuk_mcp_chordwheel.errors import ChordWheelError, UnknownChordQuality

logger = logging.getLogger(__name__)


class Beat(BaseModel):
    """
    One slot in a measure: a chord or a rest, lasting some beats.

    Durations are exact fractions of a quarter-note beat.
    """

    id: str = Field(..., description="Beat identifier")
    chord: Chord | None = Field(None, description="Chord, or None for a rest")
    duration: Fraction = Field(Fraction(1), description="Length in beats")

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @field_validator("chord", mode="before")
    @classmethod
    def parse_symbol(cls, v: Any) -> Any:
        """Accept chord symbols like 'Am7'."""
        if isinstance(v, str):
            return parse_chord_symbol(v)
        return v

    @field_validator("duration", mode="before")
    @classmethod
    def exact_duration(cls, v: Any) -> Fraction:
        return to_fraction(v)

    @field_validator("duration")
    @classmethod
    def positive_duration(cls, v: Fraction) -> Fraction:
        if v <= 0:
            raise ValueError(f"Beat duration must be positive, got {v}")
        return v

    @property
    def is_rest(self) -> bool:
        return self.chord is None


class Measure(BaseModel):
    """A measure: beats whose durations fill the time signature."""

    id: str = Field(..., description="Measure identifier")
    beats: list[Beat] = Field(default_factory=list, description="Beats in order")

    model_config = {"frozen": True}

    @property
    def total_beats(self) -> Fraction:
        return sum((b.duration for b in self.beats), Fraction(0))


class Section(BaseModel):
    """
    A structural segment of the song.

    A section may override the song's time signature.
    """

    id: str = Field(..., description="Section identifier")
    name: str = Field(..., description="Display name (e.g., 'Verse 1')")
    type: SectionType = Field(SectionType.CUSTOM, description="Section type")
    time_signature: TimeSignature | None = Field(None, description="Time signature override")
    measures: list[Measure] = Field(default_factory=list, description="Measures in order")

    model_config = {"frozen": True}

    @field_validator("type", mode="before")
    @classmethod
    def lenient_type(cls, v: Any) -> Any:
        """Unrecognized section types become 'custom'."""
        if isinstance(v, str) and v not in {t.value for t in SectionType}:
            return SectionType.CUSTOM
        return v

    @field_validator("time_signature", mode="before")
    @classmethod
    def parse_time_signature(cls, v: Any) -> TimeSignature | None:
        return None if v is None else TimeSignature.coerce(v)

    @property
    def total_beats(self) -> Fraction:
        return sum((m.total_beats for m in self.measures), Fraction(0))


@dataclass(frozen=True)
class SongEvent:
    """
    A beat placed on the song timeline.

    measure is 1-based within its section, matching how musicians count.
    """

    section_id: str
    measure: int
    beat_id: str
    start: Fraction  # beats from song start
    duration: Fraction  # beats
    chord: Chord | None

    @property
    def end(self) -> Fraction:
        return self.start + self.duration

    @property
    def is_rest(self) -> bool:
        return self.chord is None


class Song(BaseModel):
    """
    A complete song.

    Validates that every measure's beats add up to its effective
    time signature (the section override or the song's own).
    """

    schema_version: SchemaVersion = Field("song/v1", description="Schema version")
    id: str = Field(..., description="Song identifier")
    title: str = Field("Untitled", description="Song title")
    key: str = Field("C", description="Major key name (e.g., 'C', 'Eb')")
    tempo: int = Field(DEFAULT_TEMPO, gt=0, description="Tempo in BPM")
    time_signature: TimeSignature = Field(
        TimeSignature.COMMON_TIME, description="Default time signature"
    )
    sections: list[Section] = Field(default_factory=list, description="Sections in order")

    model_config = {"frozen": True}

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """Normalize to the wheel's spelling of the key."""
        return Key.parse(v).name

    @field_validator("time_signature", mode="before")
    @classmethod
    def parse_time_signature(cls, v: Any) -> TimeSignature:
        return TimeSignature.coerce(v)

    @model_validator(mode="after")
    def measures_fill_signature(self) -> Song:
        """Each measure must last exactly one bar of its time signature."""
        for section in self.sections:
            expected = self.effective_time_signature(section).beats_per_measure
            for number, measure in enumerate(section.measures, start=1):
                if measure.total_beats != expected:
                    raise ValueError(
                        f"Measure {number} of section '{section.id}' lasts "
                        f"{measure.total_beats} beats, expected {expected}"
                    )
        return self

    def get_key(self) -> Key:
        return Key.parse(self.key)

    def effective_time_signature(self, section: Section) -> TimeSignature:
        return section.time_signature or self.time_signature

    def get_section(self, section_id: str) -> Section | None:
        """Find a section by id or name."""
        for section in self.sections:
            if section.id == section_id or section.name == section_id:
                return section
        return None

    @property
    def total_beats(self) -> Fraction:
        """Length of the whole song in beats."""
        return sum((s.total_beats for s in self.sections), Fraction(0))

    def iter_events(self) -> Iterator[SongEvent]:
        """Walk every beat (rests included) in timeline order."""
        cursor = Fraction(0)
        for section in self.sections:
            for number, measure in enumerate(section.measures, start=1):
                for beat in measure.beats:
                    yield SongEvent(
                        section_id=section.id,
                        measure=number,
                        beat_id=beat.id,
                        start=cursor,
                        duration=beat.duration,
                        chord=beat.chord,
                    )
                    cursor += beat.duration

    def section_range(self, section_id: str) -> tuple[Fraction, Fraction]:
        """Start and end (in beats) of a section on the timeline."""
        cursor = Fraction(0)
        for section in self.sections:
            if section.id == section_id or section.name == section_id:
                return cursor, cursor + section.total_beats
            cursor += section.total_beats
        raise ValueError(ErrorMessages.SECTION_NOT_FOUND.format(section=section_id))

    @classmethod
    def blank(
        cls,
        id: str,
        title: str = "Untitled",
        key: str = "C",
        tempo: int = DEFAULT_TEMPO,
        time_signature: TimeSignature = TimeSignature.COMMON_TIME,
        section_names: tuple[str, ...] = ("Verse 1", "Chorus"),
        measures_per_section: int = 4,
    ) -> Song:
        """A song of whole-measure rests, ready to have chords placed."""
        sections = []
        for s_index, name in enumerate(section_names, start=1):
            section_id = f"s{s_index}"
            sections.append(
                Section(
                    id=section_id,
                    name=name,
                    type=guess_section_type(name),
                    measures=[
                        Measure(
                            id=f"{section_id}-m{m}",
                            beats=[
                                Beat(
                                    id=f"{section_id}-m{m}-b1",
                                    duration=time_signature.beats_per_measure,
                                )
                            ],
                        )
                        for m in range(1, measures_per_section + 1)
                    ],
                )
            )
        return cls(
            id=id,
            title=title,
            key=key,
            tempo=tempo,
            time_signature=time_signature,
            sections=sections,
        )

    def to_yaml_dict(self) -> dict[str, Any]:
        """
        Convert to a YAML-friendly dict.

        This produces the canonical YAML format for songs.
        """
        return {
            "schema": self.schema_version,
            "id": self.id,
            "title": self.title,
            "key": self.key,
            "tempo": self.tempo,
            "time_signature": list(self.time_signature.as_tuple()),
            "sections": [
                {
                    "id": section.id,
                    "name": section.name,
                    "type": section.type.value,
                    "time_signature": (
                        list(section.time_signature.as_tuple()) if section.time_signature else None
                    ),
                    "measures": [
                        {
                            "id": measure.id,
                            "beats": [_beat_to_yaml(beat) for beat in measure.beats],
                        }
                        for measure in section.measures
                    ],
                }
                for section in self.sections
            ],
        }

    @classmethod
    def from_yaml_dict(cls, data: dict[str, Any], strict: bool = False) -> Song:
        """
        Create a Song from a YAML-parsed dict.

        Chords can be given as symbols ("F#m7"), as {root, quality[, numeral]}
        (notes are derived in the song's key), or fully materialized with
        notes. An unknown quality falls back to the major triad with a
        warning, or raises UnknownChordQuality when strict is set.
        """
        key = Key.parse(data.get("key", "C"))
        sections = []
        for s_index, sdata in enumerate(data.get("sections", []), start=1):
            section_id = str(sdata.get("id") or f"s{s_index}")
            measures = []
            for m_index, mdata in enumerate(sdata.get("measures", []), start=1):
                measure_id = str(mdata.get("id") or f"{section_id}-m{m_index}")
                beats = []
                for b_index, bdata in enumerate(mdata.get("beats", []), start=1):
                    try:
                        chord = _chord_from_yaml(bdata.get("chord"), key, strict)
                    except ChordWheelError as e:
                        raise e.with_context(section=section_id, measure=m_index)
                    beats.append(
                        Beat(
                            id=str(bdata.get("id") or f"{measure_id}-b{b_index}"),
                            chord=chord,
                            duration=bdata.get("duration", 1),
                        )
                    )
                measures.append(Measure(id=measure_id, beats=beats))
            sections.append(
                Section(
                    id=section_id,
                    name=sdata.get("name", section_id),
                    type=sdata.get("type", SectionType.CUSTOM.value),
                    time_signature=sdata.get("time_signature"),
                    measures=measures,
                )
            )

        return cls(
            schema_version=data.get("schema", "song/v1"),
            id=str(data["id"]),
            title=data.get("title", "Untitled"),
            key=key.name,
            tempo=data.get("tempo", DEFAULT_TEMPO),
            time_signature=data.get("time_signature", [4, 4]),
            sections=sections,
        )


def _beat_to_yaml(beat: Beat) -> dict[str, Any]:
    duration: int | str = (
        int(beat.duration) if beat.duration.denominator == 1 else str(beat.duration)
    )
    chord = None
    if beat.chord is not None:
        chord = {
            "root": beat.chord.root_name,
            "quality": beat.chord.quality,
            "numeral": beat.chord.numeral,
            "notes": list(beat.chord.notes),
        }
    return {"id": beat.id, "duration": duration, "chord": chord}


def _chord_from_yaml(value: Any, key: Key, strict: bool) -> Chord | None:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            return parse_chord_symbol(value, key=key)
        except UnknownChordQuality as e:
            if strict:
                raise
            logger.warning("%s; using major triad %s", e, e.fallback)
            return Chord(root=e.fallback[0], quality="major", notes=tuple(e.fallback))

    quality = value.get("quality", "major")
    if value.get("notes") and ChordQuality.find(quality) is not None:
        return Chord(**value)

    notes, error = chord_notes_or_fallback(value["root"], quality, key)
    if error is not None:
        if strict:
            raise error
        logger.warning("%s; using major triad %s", error, notes)
        quality = "major"
    return Chord(
        root=value["root"],
        quality=quality,
        notes=tuple(notes),
        numeral=value.get("numeral"),
    )


def guess_section_type(name: str) -> SectionType:
    lowered = name.lower()
    for section_type in SectionType:
        if lowered.startswith(section_type.value):
            return section_type
    return SectionType.CUSTOM
