"""
Tests unitaires pour le lecteur mpv.

Tests couvrant:
- Construction de la ligne de commande (headers, titre, reprise)
- Lancement : executable introuvable -> PlayerLaunchError
- IPC JSON : lecture de time-pos, evenements ignores, socket absent
- Arret : SIGTERM puis SIGKILL
"""

import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from bilitui.adapters.player.mpv_player import (
    MpvPlayer,
    MpvProcess,
    build_header_fields,
)
from bilitui.core.exceptions import PlayerLaunchError


class TestBuildArgs:
    """Tests pour MpvPlayer.build_args."""

    def test_header_fields_escape_commas(self) -> None:
        """Les virgules des valeurs sont echappees pour mpv."""
        fields = build_header_fields({"Referer": "https://www.bilibili.com/", "Cookie": "a=1,b=2"})
        assert fields == r"Referer: https://www.bilibili.com/,Cookie: a=1\,b=2"

    def test_build_args_full(self) -> None:
        player = MpvPlayer(command="mpv --fs")
        args = player.build_args(
            "https://cdn/video.flv",
            {"Referer": "https://www.bilibili.com/"},
            Path("/tmp/ipc/mpv.sock"),
            title="Ma video",
            start=42,
        )

        assert args[:2] == ["mpv", "--fs"]
        assert "--input-ipc-server=/tmp/ipc/mpv.sock" in args
        assert "--http-header-fields=Referer: https://www.bilibili.com/" in args
        assert "--force-media-title=Ma video" in args
        assert "--start=42" in args
        assert args[-1] == "https://cdn/video.flv"

    def test_build_args_without_optional(self) -> None:
        args = MpvPlayer().build_args("u", {}, Path("/tmp/s"))

        assert not any(a.startswith("--start") for a in args)
        assert not any(a.startswith("--http-header-fields") for a in args)
        assert not any(a.startswith("--force-media-title") for a in args)
        assert "--profile=low-latency" not in args

    def test_build_args_live_room(self) -> None:
        args = MpvPlayer().build_args(
            "https://live.bilibili.com/21452505", {}, Path("/tmp/s"), title="Direct", live=True
        )

        assert "--profile=low-latency" in args
        assert args[-1] == "https://live.bilibili.com/21452505"


class TestLaunch:
    """Tests pour MpvPlayer.launch."""

    @pytest.mark.asyncio
    async def test_missing_executable_raises_launch_error(self) -> None:
        player = MpvPlayer(command="bilitui-lecteur-inexistant")

        with pytest.raises(PlayerLaunchError) as exc_info:
            await player.launch("https://cdn/video.flv", {})

        assert exc_info.value.hint is not None

    @pytest.mark.asyncio
    async def test_launch_returns_process_handle(self) -> None:
        fake_process = MagicMock(pid=1234, returncode=None)
        with patch(
            "bilitui.adapters.player.mpv_player.asyncio.create_subprocess_exec",
            new=AsyncMock(return_value=fake_process),
        ) as mock_exec:
            handle = await MpvPlayer().launch("https://cdn/v.flv", {"Cookie": "x=1"}, start=10)

        assert handle.pid == 1234
        assert handle.ipc_path.name == "mpv.sock"
        args = mock_exec.await_args.args
        assert args[0] == "mpv"
        assert "--start=10" in args
        handle.ipc_path.parent.rmdir()


class TestMpvProcess:
    """Tests pour le handle MpvProcess."""

    @staticmethod
    async def _serve(ipc_path: Path, response: dict):
        """Serveur IPC minimal : un evenement puis la reponse."""

        async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            request = json.loads(await reader.readline())
            writer.write(b'{"event":"playback-restart"}\n')
            reply = dict(response, request_id=request["request_id"])
            writer.write((json.dumps(reply) + "\n").encode())
            await writer.drain()
            writer.close()

        return await asyncio.start_unix_server(handle, path=str(ipc_path))

    @pytest.mark.asyncio
    async def test_position_reads_time_pos(self, tmp_path: Path) -> None:
        ipc_path = tmp_path / "mpv.sock"
        server = await self._serve(ipc_path, {"error": "success", "data": 12.5})
        try:
            process = MpvProcess(MagicMock(returncode=None), ipc_path)
            assert await process.position() == 12.5
        finally:
            server.close()
            await server.wait_closed()

    @pytest.mark.asyncio
    async def test_position_unavailable_property(self, tmp_path: Path) -> None:
        ipc_path = tmp_path / "mpv.sock"
        server = await self._serve(ipc_path, {"error": "property unavailable"})
        try:
            process = MpvProcess(MagicMock(returncode=None), ipc_path)
            assert await process.position() is None
        finally:
            server.close()
            await server.wait_closed()

    @pytest.mark.asyncio
    async def test_ipc_connection_is_fully_closed(self, tmp_path: Path) -> None:
        ipc_path = tmp_path / "mpv.sock"
        ipc_path.touch()
        reader = MagicMock()
        reader.readline = AsyncMock(
            return_value=b'{"request_id": 1, "error": "success", "data": 3.0}\n'
        )
        writer = MagicMock()
        writer.drain = AsyncMock()
        writer.wait_closed = AsyncMock()
        process = MpvProcess(MagicMock(returncode=None), ipc_path)

        with patch(
            "bilitui.adapters.player.mpv_player.asyncio.open_unix_connection",
            new=AsyncMock(return_value=(reader, writer)),
        ):
            assert await process.position() == 3.0

        writer.close.assert_called_once()
        writer.wait_closed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_position_without_socket(self, tmp_path: Path) -> None:
        process = MpvProcess(MagicMock(returncode=None), tmp_path / "absent.sock")
        assert await process.position() is None

    @pytest.mark.asyncio
    async def test_position_after_exit(self, tmp_path: Path) -> None:
        process = MpvProcess(MagicMock(returncode=0), tmp_path / "mpv.sock")
        assert await process.position() is None

    @pytest.mark.asyncio
    async def test_wait_removes_ipc_directory(self, tmp_path: Path) -> None:
        ipc_dir = tmp_path / "ipc"
        ipc_dir.mkdir()
        raw = MagicMock()
        raw.wait = AsyncMock(return_value=0)
        process = MpvProcess(raw, ipc_dir / "mpv.sock")

        assert await process.wait() == 0
        assert not ipc_dir.exists()

    @pytest.mark.asyncio
    async def test_terminate_kills_unresponsive_player(self, tmp_path: Path) -> None:
        raw = MagicMock(returncode=None, pid=99)
        raw.wait = AsyncMock(side_effect=[asyncio.TimeoutError(), 0])
        process = MpvProcess(raw, tmp_path / "mpv.sock")

        await process.terminate()

        raw.terminate.assert_called_once()
        raw.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_terminate_exited_player_is_noop(self, tmp_path: Path) -> None:
        raw = MagicMock(returncode=0)
        process = MpvProcess(raw, tmp_path / "mpv.sock")

        await process.terminate()

        raw.terminate.assert_not_called()
