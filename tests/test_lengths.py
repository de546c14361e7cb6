import unittest

from midi_to_mml.lengths import (
    ACCURACY_LENGTHS,
    COMPRESS_LENGTHS,
    FALLBACK_LENGTH,
    find_best_length,
    length_table,
)
from midi_to_mml.model import GRID_SIZE


class TestLengthTables(unittest.TestCase):

    def test_compress_table_has_no_dots(self):
        self.assertFalse(any("." in v for v in COMPRESS_LENGTHS.values()))
        self.assertIs(length_table(True), COMPRESS_LENGTHS)
        self.assertIs(length_table(False), ACCURACY_LENGTHS)

    def test_compress_lengths_are_subset_of_accuracy(self):
        for ticks, token in COMPRESS_LENGTHS.items():
            self.assertEqual(ACCURACY_LENGTHS[ticks], token)


class TestFindBestLength(unittest.TestCase):

    def test_exact_match(self):
        self.assertEqual(find_best_length(384, 4, False), [("4", 384)])
        self.assertEqual(find_best_length(288, 6, False), [("8.", 288)])
        self.assertEqual(find_best_length(384, 7, True), [("4", 384)])

    def test_low_octave_ties(self):
        self.assertEqual(find_best_length(480, 4, False), [("4", 384), ("16", 96)])
        self.assertEqual(find_best_length(840, 3, False), [("2", 768), ("32.", 72)])

    def test_low_octave_long_chain(self):
        tokens = find_best_length(2304 + 1536 + 24, 2, False)
        self.assertEqual(tokens, [("1.", 2304), ("1", 1536), ("64", 24)])

    def test_octave_five_allows_two_ties(self):
        self.assertEqual(find_best_length(480, 5, False), [("4", 384), ("16", 96)])

    def test_octave_five_falls_back_beyond_two_ties(self):
        # 504 = 384 + 96 + 24 would need three segments.
        self.assertEqual(find_best_length(504, 5, False), [("4.", 576)])

    def test_high_octave_never_ties(self):
        self.assertEqual(find_best_length(1000, 6, False), [("2.", 1152)])

    def test_closest_tie_prefers_shorter(self):
        self.assertEqual(find_best_length(480, 6, False), [("4", 384)])
        self.assertEqual(find_best_length(288, 4, True), [("8", 192)])

    def test_compress_mode_single_token(self):
        self.assertEqual(find_best_length(480, 3, True), [("4", 384)])
        self.assertEqual(find_best_length(5000, 3, True), [("1", 1536)])

    def test_nothing_fits_uses_fallback(self):
        self.assertEqual(find_best_length(0, 4, False), [FALLBACK_LENGTH])
        self.assertEqual(find_best_length(10, 4, False), [FALLBACK_LENGTH])

    def test_low_octave_round_trip_is_exact(self):
        for ticks in range(GRID_SIZE, 4000, GRID_SIZE):
            tokens = find_best_length(ticks, 4, False)
            self.assertEqual(sum(t for _, t in tokens), ticks)

    def test_tokens_match_their_ticks(self):
        for octave in (3, 5, 6):
            for compress in (False, True):
                for ticks in range(GRID_SIZE, 3000, GRID_SIZE):
                    table = length_table(compress)
                    for token, t in find_best_length(ticks, octave, compress):
                        self.assertEqual(table[t], token)
