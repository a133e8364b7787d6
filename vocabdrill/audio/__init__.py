from .playback import AudioService, NullPlayer, SoundDevicePlayer, make_player_from_config

__all__ = ["AudioService", "NullPlayer", "SoundDevicePlayer", "make_player_from_config"]
