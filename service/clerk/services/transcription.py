from pathlib import Path

from openai import AsyncOpenAI
from telegram import Bot

VOICE_FILE_EXTENSION = ".oga"


def voice_file_path(directory: str | Path, unique_id: str) -> Path:
    """Local path for a voice note; Telegram's file_unique_id keeps chats apart."""
    return Path(directory) / f"{unique_id}{VOICE_FILE_EXTENSION}"


async def download_voice(bot: Bot, file_id: str, unique_id: str, directory: str | Path) -> Path:
    """
    Download a Telegram voice note to disk.

    getFile resolves the file path on Telegram's servers, then the content
    is written to <directory>/<unique_id>.oga. Returns once the file is
    fully written and closed.
    """
    path = voice_file_path(directory, unique_id)
    path.parent.mkdir(parents=True, exist_ok=True)

    telegram_file = await bot.get_file(file_id)
    await telegram_file.download_to_drive(custom_path=path)

    return path


async def transcribe_audio(path: str | Path, speech_client: AsyncOpenAI, model: str = "whisper-1") -> str:
    """
    Transcribe a local audio file using OpenAI Whisper API.

    The file is deleted once transcription succeeds. If the API call
    raises, the file is left in place and the caller removes it.

    Returns:
        Transcribed text
    """
    path = Path(path)

    with path.open("rb") as audio_file:
        response = await speech_client.audio.transcriptions.create(
            model=model,
            file=audio_file,
        )

    path.unlink()
    return response.text
