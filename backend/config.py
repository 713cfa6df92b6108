import os
import logging
import tempfile
from typing import Dict, Optional, Any

from dotenv import load_dotenv

from domain.models import VaultFolders

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8001
DEFAULT_MODEL_DIR_SHERPA = "/models/sherpa-onnx"
DEFAULT_LLAMA_BIN = "llama-cli"
DEFAULT_LLAMA_TIMEOUT = 600

VALID_ENGINES = ("sherpa",)


def _env_bool(name: str, default: bool) -> bool:
    return os.environ.get(name, "true" if default else "false").strip().lower() in ("1", "true", "yes")


class Config:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self.host = os.environ.get("HOST", DEFAULT_HOST)
        self.port = int(os.environ.get("PORT", DEFAULT_PORT))
        self.debug = os.environ.get("DEBUG", "0") == "1"

        self.vault_root = os.environ.get("VAULT_ROOT", "").strip() or None
        defaults = VaultFolders()
        self.meetings_root = os.environ.get("MEETINGS_ROOT", defaults.meetings_root)
        self.audio_root = os.environ.get("AUDIO_ROOT", defaults.audio_root)
        self.transcripts_root = os.environ.get("TRANSCRIPTS_ROOT", defaults.transcripts_root)
        self.save_audio = _env_bool("SAVE_AUDIO", True)
        self.save_transcript = _env_bool("SAVE_TRANSCRIPT", True)
        self.temp_dir = os.environ.get("TEMP_DIR", os.path.join(tempfile.gettempdir(), "minute"))

        self.engine = os.environ.get("ENGINE", "sherpa").lower()
        self.model_dir = os.environ.get("MODEL_DIR", "").strip() or DEFAULT_MODEL_DIR_SHERPA

        self.llama_bin = os.environ.get("LLAMA_BIN", DEFAULT_LLAMA_BIN)
        self.llama_model = os.environ.get("LLAMA_MODEL", "").strip() or None
        self.llama_model_sha256 = os.environ.get("LLAMA_MODEL_SHA256", "").strip() or None
        self.llama_timeout = float(os.environ.get("LLAMA_TIMEOUT", DEFAULT_LLAMA_TIMEOUT))

        self.hf_token = os.environ.get("HF_TOKEN") or os.environ.get("HUGGINGFACE_ACCESS_TOKEN")
        self.enable_diarization = _env_bool("ENABLE_DIARIZATION", True)

    def get_hf_token(self) -> Optional[str]:
        return self.hf_token

    def vault_folders(self) -> VaultFolders:
        return VaultFolders(
            meetings_root=self.meetings_root,
            audio_root=self.audio_root,
            transcripts_root=self.transcripts_root,
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "vault_root": self.vault_root,
            "meetings_root": self.meetings_root,
            "audio_root": self.audio_root,
            "transcripts_root": self.transcripts_root,
            "save_audio": self.save_audio,
            "save_transcript": self.save_transcript,
            "temp_dir": self.temp_dir,
            "engine": self.engine,
            "model_dir": self.model_dir,
            "llama_bin": self.llama_bin,
            "llama_model": self.llama_model,
            "llama_timeout": self.llama_timeout,
            "enable_diarization": self.enable_diarization,
            "has_hf_token": self.hf_token is not None,
        }


config = Config()


def get_config() -> Config:
    return config


def create_ml_adapters(cfg: Config):
    """Create transcription and diarization adapters based on ENGINE env var.

    Uses lazy imports so unused frameworks are never loaded.
    """
    engine = cfg.engine

    if engine == "sherpa":
        from adapters.sherpa import SherpaTranscriptionAdapter
        transcription = SherpaTranscriptionAdapter()
    else:
        raise ValueError(f"Unknown ENGINE: {engine!r}. Valid options: {', '.join(VALID_ENGINES)}")

    diarization = None
    if cfg.enable_diarization:
        from adapters.pyannote.diarization import PyannoteDiarizationAdapter
        diarization = PyannoteDiarizationAdapter()

    diar_name = type(diarization).__name__ if diarization else "disabled"
    logger.info(f"ML adapters: engine={engine}, transcription={type(transcription).__name__}, diarization={diar_name}")
    return transcription, diarization


def create_summarization_adapter(cfg: Config):
    from adapters.llama.summarization import LlamaCLISummarizationAdapter

    if not cfg.llama_model:
        logger.warning("LLAMA_MODEL is not set; summarization will fail until it is configured")
    return LlamaCLISummarizationAdapter(
        executable=cfg.llama_bin,
        model_path=cfg.llama_model or "",
        timeout_seconds=cfg.llama_timeout,
        prompt_dir=cfg.temp_dir,
    )


def create_model_manager(cfg: Config):
    """Model files the configured engines need on disk."""
    from adapters.local.model_manager import LocalModelManager, RequiredModel
    from adapters.sherpa.transcription import required_model_paths

    models = [RequiredModel(name=name, path=path) for name, path in required_model_paths(cfg.model_dir)]
    if cfg.llama_model:
        models.append(RequiredModel(
            name=os.path.basename(cfg.llama_model),
            path=cfg.llama_model,
            sha256=cfg.llama_model_sha256,
        ))
    return LocalModelManager(models)


def create_vault_adapters(cfg: Config):
    """Returns (vault_access, vault_writer)."""
    from adapters.local.vault_writer import FileSystemVaultWriter, LocalVaultAccess

    return LocalVaultAccess(cfg.vault_root), FileSystemVaultWriter()


def create_progress_adapter():
    from adapters.local.log_progress import LogProgressAdapter
    return LogProgressAdapter()
