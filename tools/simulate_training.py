import argparse
import random
import time

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from src.logger import get_logger

logger = get_logger(__name__)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_fixed(2),
    retry=retry_if_exception_type(requests.exceptions.ConnectionError),
    reraise=True
)
def fetch_session_regimes(base_url: str, condition: str, stage: int) -> list:
    """Asks the server which regimes to do in a session started now."""
    response = requests.get(f"{base_url}/regimes/session", params={"condition": condition, "stage": stage})
    response.raise_for_status()
    return response.json()["regimes"]


@retry(
    stop=stop_after_attempt(3),
    wait=wait_fixed(2),
    retry=retry_if_exception_type(requests.exceptions.ConnectionError),
    reraise=True
)
def post_segment(base_url: str, segment: dict) -> dict:
    response = requests.post(f"{base_url}/segments", json=segment)
    response.raise_for_status()
    return response.json()


def run_session(base_url: str, condition: str, stage: int, pause_seconds: float = 0, rng=random) -> int:
    """
    Plays one practice session: fetches the session's regimes and reports a
    segment with a made up average coherence for each. Returns the number of
    segments recorded.
    """
    try:
        regimes = fetch_session_regimes(base_url, condition, stage)
    except requests.exceptions.RequestException as e:
        logger.error(f"!! Failed to fetch regimes for condition {condition}, stage {stage}: {e}")
        return 0

    logger.info(f"--- Starting session: {len(regimes)} regimes ---")
    recorded = 0
    session_offset_ms = 0
    for regime in regimes:
        segment = {
            "regime_id": regime["id"],
            "session_start_time": int(session_offset_ms),
            "avg_coherence": round(rng.uniform(0.5, 3.0), 3),
            "stage": stage,
        }
        try:
            logger.info(f"Sending segment for regime {regime['id']} ({regime['breaths_per_minute']} bpm)")
            post_segment(base_url, segment)
            recorded += 1
        except requests.exceptions.RequestException as e:
            logger.error(f"!! Failed to record segment for regime {regime['id']}: {e}")

        session_offset_ms += regime["duration_ms"]
        if pause_seconds:
            time.sleep(pause_seconds)

    logger.info(f"--- Session finished: {recorded} segments recorded ---")
    return recorded


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Simulate a participant's practice session against a running server.")
    parser.add_argument("--url", default="http://127.0.0.1:8000", help="Base URL of the server.")
    parser.add_argument("--condition", default="A", choices=["A", "B"], help="Experimental condition.")
    parser.add_argument("--stage", type=int, default=2, choices=[2, 3], help="Training stage.")
    parser.add_argument("--pause", type=float, default=1.0, help="Seconds to wait between segments.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the made up coherence values.")

    args = parser.parse_args()

    run_session(args.url, args.condition, args.stage, pause_seconds=args.pause, rng=random.Random(args.seed))
