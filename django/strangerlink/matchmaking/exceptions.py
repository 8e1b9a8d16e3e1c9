class MatchmakingError(Exception):
    pass


class InvalidModeError(MatchmakingError):
    def __init__(self, mode):
        super().__init__(f"Unsupported mode: {mode!r}")
        self.mode = mode


class UnknownConnectionError(MatchmakingError):
    def __init__(self, channel_name: str):
        super().__init__(f"Connection {channel_name} is not registered")
        self.channel_name = channel_name
