import unittest

from midi_fixtures import make_midi, note, program, smpte_midi, tempo

from midi_to_mml.errors import MidiParseError, UnsupportedTimingFormat
from midi_to_mml.extract import extract_midi_notes, load_midi
from midi_to_mml.model import GRID_SIZE, TempoChange


class TestNoteExtraction(unittest.TestCase):

    def test_single_quarter_note(self):
        data = make_midi(tempo(0, 120) + note(60, 0, 384))
        extracted = extract_midi_notes(data)
        self.assertEqual(len(extracted.notes), 1)
        n = extracted.notes[0]
        self.assertEqual((n.pitch, n.start, n.end, n.duration), (60, 0, 384, 384))
        self.assertEqual(n.velocity, 100)
        self.assertEqual(n.instrument, "Acoustic Grand Piano")
        self.assertEqual(extracted.bpm, 120)
        self.assertEqual(extracted.tempo_changes, [TempoChange(0, 120)])

    def test_rescales_to_canonical_resolution(self):
        data = make_midi(note(60, 96, 192), ticks_per_beat=96)
        n = extract_midi_notes(data).notes[0]
        self.assertEqual((n.start, n.end), (384, 768))

    def test_snaps_start_and_end_to_grid(self):
        data = make_midi(note(60, 10, 400))
        n = extract_midi_notes(data).notes[0]
        self.assertEqual((n.start, n.end), (0, 408))

    def test_short_note_gets_one_grid_unit(self):
        data = make_midi(note(60, 0, 5))
        n = extract_midi_notes(data).notes[0]
        self.assertEqual((n.start, n.end), (0, GRID_SIZE))

    def test_note_on_zero_velocity_closes_note(self):
        from mido import Message
        events = [
            (0, Message("note_on", note=64, velocity=90)),
            (192, Message("note_on", note=64, velocity=0)),
        ]
        n = extract_midi_notes(make_midi(events)).notes[0]
        self.assertEqual((n.pitch, n.start, n.end, n.velocity), (64, 0, 192, 90))

    def test_percussion_channel_is_ignored(self):
        data = make_midi(note(36, 0, 384, channel=9) + note(60, 0, 384))
        extracted = extract_midi_notes(data)
        self.assertEqual([n.pitch for n in extracted.notes], [60])
        self.assertEqual(extracted.stats["percussion_notes"], 1)

    def test_unterminated_notes_are_dropped(self):
        from mido import Message
        events = note(60, 0, 384) + [(0, Message("note_on", note=67, velocity=80))]
        extracted = extract_midi_notes(make_midi(events))
        self.assertEqual([n.pitch for n in extracted.notes], [60])
        self.assertEqual(extracted.stats["unterminated_notes"], 1)

    def test_sorted_by_start_then_pitch_descending(self):
        data = make_midi(note(60, 0, 384) + note(67, 0, 384) + note(64, 0, 384) + note(62, 384, 768))
        pitches = [n.pitch for n in extract_midi_notes(data).notes]
        self.assertEqual(pitches, [67, 64, 60, 62])

    def test_duplicates_keep_loudest(self):
        data = make_midi(note(60, 0, 384, velocity=80), note(60, 0, 384, velocity=110, channel=1))
        extracted = extract_midi_notes(data)
        self.assertEqual(len(extracted.notes), 1)
        self.assertEqual(extracted.notes[0].velocity, 110)
        self.assertEqual(extracted.stats["duplicate_notes"], 1)

    def test_program_change_sets_instrument(self):
        data = make_midi(program(0, 40) + note(72, 0, 384))
        self.assertEqual(extract_midi_notes(data).notes[0].instrument, "Violin")

    def test_program_is_per_channel(self):
        data = make_midi(program(0, 40, channel=1) + note(72, 0, 384) + note(60, 0, 384, channel=1))
        labels = {n.pitch: n.instrument for n in extract_midi_notes(data).notes}
        self.assertEqual(labels, {72: "Acoustic Grand Piano", 60: "Violin"})

    def test_notes_satisfy_invariants(self):
        events = []
        for i in range(40):
            events += note(40 + i, i * 37, i * 37 + 1 + (i * 13) % 500)
        for n in extract_midi_notes(make_midi(events)).notes:
            self.assertLess(n.start, n.end)
            self.assertGreaterEqual(n.duration, GRID_SIZE)
            self.assertTrue(0 <= n.pitch <= 127)
            self.assertEqual(n.start % GRID_SIZE, 0)


class TestTempoExtraction(unittest.TestCase):

    def test_default_tempo_when_missing(self):
        extracted = extract_midi_notes(make_midi(note(60, 0, 384)))
        self.assertEqual(extracted.bpm, 120)
        self.assertEqual(extracted.tempo_changes, [TempoChange(0, 120)])

    def test_tempo_timeline(self):
        data = make_midi(tempo(0, 100) + tempo(770, 150) + note(60, 0, 384))
        extracted = extract_midi_notes(data)
        self.assertEqual(extracted.bpm, 100)
        self.assertEqual(extracted.tempo_changes, [TempoChange(0, 100), TempoChange(768, 150)])
        self.assertEqual(extracted.stats["tempo_change_count"], 1)

    def test_tempo_collected_across_tracks_and_deduplicated(self):
        data = make_midi(
            tempo(0, 120) + note(60, 0, 384),
            tempo(0, 90) + tempo(384, 140) + note(64, 0, 384),
        )
        extracted = extract_midi_notes(data)
        self.assertEqual(extracted.tempo_changes, [TempoChange(0, 120), TempoChange(384, 140)])

    def test_tempo_ticks_rescaled(self):
        data = make_midi(tempo(0, 120) + tempo(96, 60) + note(60, 0, 96), ticks_per_beat=96)
        self.assertEqual(extract_midi_notes(data).tempo_changes[1], TempoChange(384, 60))


class TestMidiLoading(unittest.TestCase):

    def test_smpte_timing_rejected(self):
        with self.assertRaises(UnsupportedTimingFormat):
            load_midi(smpte_midi())

    def test_garbage_bytes_rejected(self):
        with self.assertRaises(MidiParseError):
            load_midi(b"this is not a midi file")

    def test_empty_bytes_rejected(self):
        with self.assertRaises(MidiParseError):
            load_midi(b"")

    def test_load_from_path(self):
        import os
        import tempfile
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "song.mid")
            with open(path, "wb") as f:
                f.write(make_midi(note(60, 0, 384)))
            self.assertEqual(len(load_midi(path).tracks), 1)
