# -*- coding: utf-8 -*-

"""Command-line interface: parse .osu files & summarize them."""

import argparse
import sys
import time
from typing import Optional

from beatmapkit import logging
from beatmapkit import utils
from beatmapkit.osu.beatmap import Beatmap
from beatmapkit.osu.errors import BeatmapError

def parse_file(path: str, as_json: bool = False) -> bool:
    st = time.time_ns()

    try:
        bmap = Beatmap.from_file(path)
    except BeatmapError as exc:
        logging.log(f'Failed to parse {path}: {exc}', logging.Ansi.LRED)
        return False

    elapsed = utils.magnitude_fmt_time(time.time_ns() - st)

    if bmap is None:
        logging.log(f'{path} not found.', logging.Ansi.LRED)
        return False

    if as_json:
        sys.stdout.write(bmap.as_json(indent=True).decode() + '\n')
        sys.stdout.flush()
    else:
        logging.log(
            f'Parsed {bmap} in {elapsed} ({len(bmap.hit_objects)} objects, '
            f'{len(bmap.timing_points)} timing points).',
            logging.Ansi.LGREEN
        )

    return True

def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog='beatmapkit',
        description='Parse osu! .osu (v14) beatmap files.'
    )
    parser.add_argument('files', nargs='+', metavar='FILE')
    parser.add_argument('--json', action='store_true',
                        help='dump each parsed beatmap as json')
    parser.add_argument('--debug', action='store_true',
                        help='log lines skipped in [Events]')
    args = parser.parse_args(argv)

    logging.set_debug(args.debug)

    results = [parse_file(path, as_json=args.json) for path in args.files]
    return 0 if all(results) else 1

if __name__ == '__main__':
    raise SystemExit(main())
