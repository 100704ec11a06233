import logging
import time
from os import getenv
from pathlib import Path
from typing import Dict, Optional

import requests


REPO_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = REPO_ROOT / "data"

INCIDENT_CSV_URL = getenv(
    "NYPD_SHOOTINGS_CSV_URL",
    "https://data.cityofnewyork.us/api/views/833y-fsy8/rows.csv?accessType=DOWNLOAD",
)
BOROUGH_GEOJSON_URL = getenv(
    "NYC_BOROUGHS_GEOJSON_URL",
    "https://data.cityofnewyork.us/api/geospatial/tqmj-j8zm?method=export&format=GeoJSON",
)

HEADERS = {
    "User-Agent": "nypd-shootings-report/0.1",
}
APP_TOKEN = getenv("SOCRATA_APP_TOKEN")
if APP_TOKEN:
    HEADERS["X-App-Token"] = APP_TOKEN

MAX_RETRY_ATTEMPTS = 6
BASE_RETRY_DELAY = 1.0
CHUNK_SIZE = 1 << 20

log = logging.getLogger("fetch_data")


def _request_with_backoff(
    url: str,
    headers: Dict,
    max_attempts: int = MAX_RETRY_ATTEMPTS,
) -> requests.Response:
    attempt = 0
    delay = BASE_RETRY_DELAY

    while True:
        attempt += 1
        try:
            response = requests.get(url, headers=headers, timeout=120, stream=True)
        except requests.RequestException:
            if attempt >= max_attempts:
                raise
            log.warning("Request to %s failed (attempt %d), retrying", url, attempt)
            time.sleep(delay)
            delay *= 1.5
            continue
        if response.status_code in (429, 500, 502, 503, 504):
            if attempt >= max_attempts:
                response.raise_for_status()
            retry_after = response.headers.get("Retry-After")
            if retry_after:
                try:
                    wait_time = float(retry_after)
                except ValueError:
                    wait_time = delay
            else:
                wait_time = delay
            log.warning(
                "%s returned %d, waiting %.1fs", url, response.status_code, wait_time
            )
            response.close()
            time.sleep(wait_time)
            delay *= 1.5
            continue

        response.raise_for_status()
        return response


def download(url: str, destination: Path, headers: Optional[Dict] = None) -> Path:
    """Stream ``url`` to ``destination``, replacing whatever is there."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_suffix(destination.suffix + ".part")

    try:
        with _request_with_backoff(url, headers=headers or HEADERS) as response:
            with open(partial, "wb") as fh:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    fh.write(chunk)
    except BaseException:
        partial.unlink(missing_ok=True)
        raise

    partial.replace(destination)
    log.info("Wrote %s (%s bytes)", destination, f"{destination.stat().st_size:,}")
    return destination


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    log.info("Fetching shooting incidents...")
    download(INCIDENT_CSV_URL, DATA_DIR / "nypd_shooting_incidents.csv")

    log.info("Fetching borough boundaries...")
    download(BOROUGH_GEOJSON_URL, DATA_DIR / "borough_boundaries.geojson")


if __name__ == "__main__":
    main()
