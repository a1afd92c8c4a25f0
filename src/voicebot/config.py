"""Runtime configuration for the voice chatbot."""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="VOICEBOT_", env_file=".env", extra="ignore", populate_by_name=True)

    app_name: str = "voicebot"
    log_level: str = "INFO"
    debug: bool = False

    wake_phrase: str = Field(default="hey watson", description="Phrase that wakes the bot while asleep.")
    sleep_timeout_seconds: float = Field(default=10.0, gt=0, description="Idle time before falling asleep.")
    serialize_turns: bool = Field(
        default=False,
        description="Run one dialog turn at a time instead of letting overlapping turns race.",
    )

    voice: str = Field(
        default="en-US_AllisonVoice",
        description="Synthesis voice, e.g. en-US_AllisonVoice, en-US_LisaVoice, en-US_MichaelVoice.",
    )
    audio_format: str = "audio/wav"
    sample_rate: int = 44_100
    channels: int = 2
    interim_results: bool = True
    artifact_dir: Path | None = Field(default=None, description="Where reply audio is written; temp dir if unset.")

    stt_backend: str = "watson"
    tts_backend: str = "watson"
    dialog_backend: str = "watson"

    assistant_workspace_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("VOICEBOT_ASSISTANT_WORKSPACE_ID", "ASSISTANT_WORKSPACE_ID"),
    )
    assistant_version: str = "2019-02-28"
    assistant_apikey: str | None = None
    assistant_url: str | None = None
    stt_apikey: str | None = None
    stt_url: str | None = None
    tts_apikey: str | None = None
    tts_url: str | None = None


settings = Settings()
