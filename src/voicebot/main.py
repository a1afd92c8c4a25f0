"""CLI startup entrypoint for the voice chatbot."""

from __future__ import annotations

import asyncio

import typer
from rich import print

from voicebot.config import Settings, settings
from voicebot.gate import WakeSleepGate
from voicebot.telemetry.logging import configure_logging

app = typer.Typer(help="Voice-activated chatbot service entrypoint")

_ARTIFACT_SUFFIXES = {
    "audio/wav": ".wav",
    "audio/flac": ".flac",
    "audio/ogg": ".ogg",
    "audio/ogg;codecs=opus": ".ogg",
    "audio/ogg;codecs=vorbis": ".ogg",
    "audio/mp3": ".mp3",
    "audio/mpeg": ".mp3",
}

_SECRET_FIELDS = ("assistant_apikey", "stt_apikey", "tts_apikey")


def _build_capture(config: Settings):
    backend = config.stt_backend.lower()
    if backend == "speechrecognition":
        from voicebot.voice.stt_speechrecognition import (
            SpeechRecognitionCaptureStream,
            SpeechRecognitionMicrophoneSource,
            SpeechRecognitionRecognizer,
        )

        return SpeechRecognitionCaptureStream(SpeechRecognitionRecognizer(), SpeechRecognitionMicrophoneSource())

    from voicebot.voice.stt_watson import WatsonCaptureStream

    return WatsonCaptureStream(
        apikey=config.stt_apikey,
        url=config.stt_url,
        sample_rate=config.sample_rate,
        channels=config.channels,
        interim_results=config.interim_results,
    )


def _build_synthesizer(config: Settings):
    if config.tts_backend.lower() == "pyttsx3":
        from voicebot.voice.tts_pyttsx3 import Pyttsx3SpeechSynthesizer

        return Pyttsx3SpeechSynthesizer()

    from voicebot.voice.tts_watson import WatsonSpeechSynthesizer

    return WatsonSpeechSynthesizer(
        voice=config.voice,
        accept=config.audio_format,
        apikey=config.tts_apikey,
        url=config.tts_url,
    )


def _build_dialog(config: Settings):
    from voicebot.dialog import EchoDialogService, WatsonAssistantDialogService

    if config.dialog_backend.lower() == "echo":
        return EchoDialogService()
    if not config.assistant_workspace_id:
        raise RuntimeError("Set ASSISTANT_WORKSPACE_ID (or VOICEBOT_ASSISTANT_WORKSPACE_ID) to use Watson Assistant.")
    return WatsonAssistantDialogService(
        config.assistant_workspace_id,
        version=config.assistant_version,
        apikey=config.assistant_apikey,
        url=config.assistant_url,
        debug=config.debug,
    )


def _build_chatbot(config: Settings):
    from voicebot.chatbot import VoiceChatbot
    from voicebot.turns import TurnTakingController
    from voicebot.voice.playback import SoundDeviceAudioPlayer, SoundFileDurationProbe

    capture = _build_capture(config)
    player = SoundDeviceAudioPlayer()
    controller = TurnTakingController(
        gate=WakeSleepGate(config.wake_phrase, config.sleep_timeout_seconds),
        dialog=_build_dialog(config),
        synthesizer=_build_synthesizer(config),
        probe=SoundFileDurationProbe(),
        player=player,
        capture=capture,
        artifact_dir=config.artifact_dir,
        artifact_suffix=_artifact_suffix(config),
        serialize_turns=config.serialize_turns,
    )
    return VoiceChatbot(capture, controller), controller, player


def _artifact_suffix(config: Settings) -> str:
    if config.tts_backend.lower() == "pyttsx3":
        return ".wav"
    return _ARTIFACT_SUFFIXES.get(config.audio_format.replace(" ", "").lower(), ".wav")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Start listening when no subcommand is given."""
    if ctx.invoked_subcommand is None:
        run()


@app.command()
def run() -> None:
    """Listen for the wake phrase and hold a spoken conversation."""
    configure_logging(settings.log_level, debug=settings.debug)
    try:
        chatbot, controller, player = _build_chatbot(settings)
    except RuntimeError as exc:
        print({"error": str(exc)})
        raise typer.Exit(code=1)

    try:
        asyncio.run(chatbot.run())
    finally:
        controller.close()
        player.close()


@app.command("show-config")
def show_config() -> None:
    """Show the effective runtime configuration."""
    payload = settings.model_dump(mode="json")
    for field_name in _SECRET_FIELDS:
        if payload.get(field_name):
            payload[field_name] = "***"
    print(payload)


if __name__ == "__main__":
    app()
