"""
Lecteur externe mpv pilote par IPC JSON.

mpv est lance avec un socket IPC dedie (--input-ipc-server) place dans un
repertoire temporaire propre au processus. La position de lecture est
interrogee via la commande JSON `get_property time-pos`.

Les headers d'authentification (Cookie, Referer, User-Agent) sont
transmis a mpv via --http-header-fields : le CDN refuse les flux sans
Referer bilibili.
"""

import asyncio
import json
import shlex
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from loguru import logger

from bilitui.core.exceptions import PlayerLaunchError
from bilitui.core.ports.player import IMediaPlayer, IPlayerProcess

# Delai accorde a mpv pour s'arreter apres SIGTERM avant SIGKILL
TERMINATE_TIMEOUT = 5.0
# Delai maximum d'une requete IPC
IPC_TIMEOUT = 2.0


def build_header_fields(headers: dict[str, str]) -> str:
    """
    Formate les headers pour --http-header-fields.

    mpv separe les entrees par des virgules : les virgules des valeurs
    doivent etre echappees.
    """
    return ",".join(
        f"{name}: {value}".replace(",", r"\,") for name, value in headers.items()
    )


class MpvProcess(IPlayerProcess):
    """
    Handle d'un processus mpv.

    Attributes:
        ipc_path: Chemin du socket IPC JSON
    """

    def __init__(self, process: asyncio.subprocess.Process, ipc_path: Path) -> None:
        self._process = process
        self.ipc_path = ipc_path
        self._request_id = 0

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode

    async def _ipc_request(self, command: list) -> Optional[dict]:
        """Envoie une commande JSON et retourne la reponse correspondante."""
        if not self.ipc_path.exists():
            return None
        self._request_id += 1
        request_id = self._request_id
        payload = json.dumps({"command": command, "request_id": request_id}) + "\n"

        reader, writer = await asyncio.open_unix_connection(str(self.ipc_path))
        try:
            writer.write(payload.encode("utf-8"))
            await writer.drain()
            while True:
                line = await reader.readline()
                if not line:
                    return None
                message = json.loads(line)
                # Les evenements asynchrones de mpv partagent le socket
                if message.get("request_id") == request_id:
                    return message
        finally:
            writer.close()
            await writer.wait_closed()

    async def position(self) -> Optional[float]:
        """
        Position courante en secondes.

        Returns:
            time-pos, ou None si mpv ne repond pas (demarrage, fermeture)
        """
        if self.returncode is not None:
            return None
        try:
            response = await asyncio.wait_for(
                self._ipc_request(["get_property", "time-pos"]),
                timeout=IPC_TIMEOUT,
            )
        except (OSError, asyncio.TimeoutError, ValueError) as e:
            logger.debug(f"IPC mpv indisponible: {e}")
            return None
        if not response or response.get("error") != "success":
            return None
        data = response.get("data")
        return float(data) if data is not None else None

    async def wait(self) -> int:
        """Attend la fin de mpv et nettoie le socket IPC."""
        try:
            return await self._process.wait()
        finally:
            shutil.rmtree(self.ipc_path.parent, ignore_errors=True)

    async def terminate(self) -> None:
        """Arrete mpv (SIGTERM, puis SIGKILL si necessaire)."""
        if self.returncode is not None:
            return
        self._process.terminate()
        try:
            await asyncio.wait_for(self._process.wait(), timeout=TERMINATE_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(f"mpv (pid {self.pid}) ne repond pas, arret force")
            self._process.kill()
            await self._process.wait()


class MpvPlayer(IMediaPlayer):
    """
    Lanceur mpv.

    Attributes:
        command: Commande du lecteur (peut contenir des options, ex: "mpv --fs")
    """

    def __init__(self, command: str = "mpv") -> None:
        self.command = command

    def build_args(
        self,
        url: str,
        headers: dict[str, str],
        ipc_path: Path,
        title: Optional[str] = None,
        start: Optional[int] = None,
        live: bool = False,
    ) -> list[str]:
        """Construit la ligne de commande mpv."""
        args = shlex.split(self.command)
        args += [
            f"--input-ipc-server={ipc_path}",
            "--force-window=immediate",
            "--really-quiet",
        ]
        if headers:
            args.append(f"--http-header-fields={build_header_fields(headers)}")
        if title:
            args.append(f"--force-media-title={title}")
        if start:
            args.append(f"--start={int(start)}")
        if live:
            # La page du salon est resolue par le hook ytdl de mpv
            args.append("--profile=low-latency")
        args.append(url)
        return args

    async def launch(
        self,
        url: str,
        headers: dict[str, str],
        title: Optional[str] = None,
        start: Optional[int] = None,
        live: bool = False,
    ) -> MpvProcess:
        """
        Lance mpv sur l'URL du flux.

        Raises:
            PlayerLaunchError: Si l'executable est introuvable ou ne demarre pas
        """
        ipc_dir = Path(tempfile.mkdtemp(prefix="bilitui-mpv-"))
        ipc_path = ipc_dir / "mpv.sock"
        args = self.build_args(url, headers, ipc_path, title=title, start=start, live=live)

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except FileNotFoundError as e:
            shutil.rmtree(ipc_dir, ignore_errors=True)
            raise PlayerLaunchError(
                f"Lecteur introuvable: {args[0]}",
                hint="Installez mpv ou definissez BILITUI_PLAYER_COMMAND.",
            ) from e
        except OSError as e:
            shutil.rmtree(ipc_dir, ignore_errors=True)
            raise PlayerLaunchError(f"Lancement du lecteur impossible: {e}") from e

        logger.info(f"mpv lance (pid {process.pid})")
        return MpvProcess(process, ipc_path)
