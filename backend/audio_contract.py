"""WAV payload contract check: mono, 16 kHz, 16-bit PCM.

Audio capture and conversion happen upstream; the pipeline only refuses to
copy audio into the vault when the staged file does not meet the contract.
"""

import logging
import wave
from pathlib import Path

logger = logging.getLogger(__name__)

CONTRACT_SAMPLE_RATE = 16000
CONTRACT_CHANNELS = 1
CONTRACT_SAMPLE_WIDTH = 2


def is_contract_wav(path: Path) -> bool:
    try:
        with wave.open(str(path), "rb") as wf:
            channels = wf.getnchannels()
            rate = wf.getframerate()
            width = wf.getsampwidth()
            compression = wf.getcomptype()
    except (OSError, EOFError, wave.Error) as e:
        logger.warning(f"Not a readable WAV file: {path} ({e})")
        return False

    ok = (
        channels == CONTRACT_CHANNELS
        and rate == CONTRACT_SAMPLE_RATE
        and width == CONTRACT_SAMPLE_WIDTH
        and compression == "NONE"
    )
    if not ok:
        logger.warning(
            f"WAV contract mismatch for {path}: channels={channels} rate={rate} width={width} comp={compression}"
        )
    return ok
