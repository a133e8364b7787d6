import unittest

from vocabdrill.audio.playback import NullPlayer, make_player_from_config
from vocabdrill.quiz.errors import PlaybackError


class NullPlayerTests(unittest.TestCase):
    def test_missing_reference_raises(self) -> None:
        with self.assertRaises(PlaybackError):
            NullPlayer().play(None)
        with self.assertRaises(PlaybackError):
            NullPlayer().play("")

    def test_play_completes_immediately(self) -> None:
        f = NullPlayer().play("hon.mp3")
        self.assertTrue(f.done())
        self.assertIsNone(f.result())

    def test_factory(self) -> None:
        self.assertIsInstance(make_player_from_config({"audio": {"backend": "none"}}), NullPlayer)
        with self.assertRaises(ValueError):
            make_player_from_config({"audio": {"backend": "winmm"}})


if __name__ == "__main__":
    unittest.main()
