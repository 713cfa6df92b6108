"""LlamaCLISummarizationAdapter — meeting extraction via the llama.cpp CLI.

The model is prompted to emit one JSON object. Output is returned untouched;
decoding, repair routing and validation are the pipeline's job.
"""

import logging
import os
import subprocess
import tempfile
import time
from datetime import datetime
from typing import Optional

from domain.errors import PipelineCancelled, SummarizationFailed
from domain.models import CancellationToken
from file_contract import iso_date
from ports.summarization import SummarizationPort

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.5
MAX_OUTPUT_CHARS = 2_000_000

SCHEMA_BLOCK = """{
  "title": string,
  "date": "YYYY-MM-DD",
  "summary": string,
  "decisions": [string],
  "action_items": [{"owner": string, "task": string, "due": string}],
  "open_questions": [string],
  "key_points": [string]
}"""


def summarization_prompt(timeline_text: str, meeting_date: datetime) -> str:
    day = iso_date(meeting_date)
    return f"""You must output JSON only.

Return exactly one JSON object matching this schema:
{SCHEMA_BLOCK}

Rules:
- Output must be a single JSON object.
- No markdown, no code fences, no commentary.
- All arrays must be present (use [] if none).
- date must be "{day}" unless the transcript clearly indicates a different meeting date.
- action_items.due must be "YYYY-MM-DD" or "".
- If the title is unknown, use "Meeting {day}".

Transcript:
{timeline_text}
"""


def repair_prompt(invalid_output: str) -> str:
    return f"""You must output JSON only.

The following text was intended to be a JSON object but is invalid or does not match the schema.
Produce a corrected JSON object that matches this schema exactly:
{SCHEMA_BLOCK}

Rules:
- Output must be a single JSON object.
- No markdown, no code fences, no commentary.
- All arrays must be present.
- If a field cannot be recovered, use an empty string or empty array as appropriate.
- action_items.due must be "YYYY-MM-DD" or "".

Invalid output:
{invalid_output}
"""


class LlamaCLISummarizationAdapter(SummarizationPort):
    def __init__(
        self,
        executable: str,
        model_path: str,
        timeout_seconds: float = 600.0,
        context_size: int = 8192,
        max_tokens: int = 2048,
        temperature: float = 0.2,
        prompt_dir: Optional[str] = None,
    ):
        self._executable = executable
        self._model_path = model_path
        self._timeout = timeout_seconds
        self._context_size = context_size
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._prompt_dir = prompt_dir

    def summarize(
        self,
        timeline_text: str,
        meeting_date: datetime,
        cancellation: Optional[CancellationToken] = None,
    ) -> str:
        return self._run(summarization_prompt(timeline_text, meeting_date), cancellation)

    def repair_json(
        self,
        raw_output: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> str:
        return self._run(repair_prompt(raw_output), cancellation)

    def _command(self, prompt_path: str) -> list[str]:
        return [
            self._executable,
            "-m", self._model_path,
            "-c", str(self._context_size),
            "-n", str(self._max_tokens),
            "--temp", str(self._temperature),
            "--no-display-prompt",
            "-no-cnv",
            "-f", prompt_path,
        ]

    def _run(self, prompt: str, cancellation: Optional[CancellationToken]) -> str:
        # Long meetings exceed the per-argument size limit, so the prompt goes through a file.
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._prompt_dir,
                prefix="llama-prompt-",
                suffix=".txt",
                delete=False,
            ) as f:
                f.write(prompt)
                prompt_path = f.name
        except OSError as e:
            raise SummarizationFailed(debug_detail=f"could not stage prompt: {e}") from e

        try:
            return self._run_command(self._command(prompt_path), len(prompt), cancellation)
        finally:
            try:
                os.unlink(prompt_path)
            except OSError as e:
                logger.warning(f"Cleanup error: {e}")

    def _run_command(self, cmd: list[str], prompt_chars: int, cancellation: Optional[CancellationToken]) -> str:
        logger.info(f"Running llama ({prompt_chars} prompt chars)")
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            logger.error(f"Could not launch llama: {e}")
            raise SummarizationFailed(debug_detail=f"failed to launch {self._executable}: {e}") from e

        deadline = time.monotonic() + self._timeout
        while True:
            try:
                stdout, stderr = proc.communicate(timeout=POLL_INTERVAL_SECONDS)
                break
            except subprocess.TimeoutExpired:
                if cancellation is not None and cancellation.is_cancelled:
                    proc.kill()
                    proc.communicate()
                    logger.info("Llama cancelled")
                    raise PipelineCancelled()
                if time.monotonic() > deadline:
                    proc.kill()
                    proc.communicate()
                    raise SummarizationFailed(debug_detail=f"llama timed out after {self._timeout:.0f}s")

        if proc.returncode != 0:
            logger.error(f"llama failed (exitCode={proc.returncode})")
            raise SummarizationFailed(
                debug_detail=f"llama failed (exitCode={proc.returncode})\n{stderr[-4000:]}"
            )

        if len(stdout) > MAX_OUTPUT_CHARS:
            raise SummarizationFailed(debug_detail="llama output exceeded limit")

        return stdout
