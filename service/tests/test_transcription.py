"""
Tests for voice memo download and transcription.
"""

from unittest.mock import AsyncMock

import pytest
from openai import OpenAIError

from clerk.services.transcription import download_voice, transcribe_audio, voice_file_path
from conftest import FakeBot, fake_openai


class TestDownloadVoice:

    def test_path_named_by_unique_id(self, tmp_path):
        assert voice_file_path(tmp_path, "AgADxyz") == tmp_path / "AgADxyz.oga"

    async def test_writes_file_into_new_directory(self, tmp_path):
        bot = FakeBot(content=b"voice bytes")
        directory = tmp_path / "audio_files"

        path = await download_voice(bot, "file-1", "unique-1", directory)

        assert path == directory / "unique-1.oga"
        assert path.read_bytes() == b"voice bytes"
        assert bot.requested_file_ids == ["file-1"]


class TestTranscribeAudio:

    async def test_returns_text_and_deletes_file(self, tmp_path):
        path = tmp_path / "memo.oga"
        path.write_bytes(b"voice bytes")
        client = fake_openai(transcript="gm everyone")

        text = await transcribe_audio(path, client)

        assert text == "gm everyone"
        assert not path.exists()
        assert client.audio.transcriptions.create.call_args.kwargs["model"] == "whisper-1"

    async def test_failure_leaves_file_for_caller(self, tmp_path):
        path = tmp_path / "memo.oga"
        path.write_bytes(b"voice bytes")
        client = fake_openai()
        client.audio.transcriptions.create = AsyncMock(side_effect=OpenAIError("whisper down"))

        with pytest.raises(OpenAIError):
            await transcribe_audio(path, client)
        assert path.exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
