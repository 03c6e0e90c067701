# -*- coding: utf-8 -*-

from typing import Optional

import aiohttp

from beatmapkit import logging
from beatmapkit.osu.beatmap import Beatmap

__all__ = ('BeatmapDownloader',)

# serves the raw .osu file for a given beatmap id
OSU_FILE_BASE = 'https://osu.ppy.sh/osu'

class BeatmapDownloader:
    """\
    Fetch .osu files from the osu! servers.

    Basic usage:
    ```
      async with BeatmapDownloader() as dl:
        bmap = await dl.get_beatmap(315)
    ```
    """
    def __init__(
        self, base_url: str = OSU_FILE_BASE,
        http_sess: Optional[aiohttp.ClientSession] = None
    ) -> None:
        self.base_url = base_url.rstrip('/')

        # only close the session if it's ours
        self.http_sess = http_sess
        self._owns_sess = http_sess is None

    async def __aenter__(self):
        if self.http_sess is None:
            self.http_sess = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._owns_sess and self.http_sess is not None:
            await self.http_sess.close()
            self.http_sess = None

    async def get_osu_file(self, beatmap_id: int) -> Optional[bytes]:
        """Fetch the raw .osu file; None if the server doesn't have it."""
        url = f'{self.base_url}/{beatmap_id}'

        async with self.http_sess.get(url) as resp:
            if not resp or resp.status != 200:
                logging.log(
                    f'Failed to fetch {url} ({resp.status}).',
                    logging.Ansi.LYELLOW
                )
                return

            data = await resp.read()

        # unknown ids are served as empty files.
        return data or None

    async def get_beatmap(self, beatmap_id: int) -> Optional[Beatmap]:
        """Fetch & parse a beatmap; BeatmapError is propagated."""
        if not (data := await self.get_osu_file(beatmap_id)):
            return

        return Beatmap.from_data(data)
