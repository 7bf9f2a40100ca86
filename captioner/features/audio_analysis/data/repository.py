import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import sessionmaker

from captioner.core.database.connection import SessionLocal
from .sql_models import AudioAnalysisModel
from ..domain.interfaces import IAnalysisStore
from ..domain.models import AudioAnalysis, MediaFingerprint

logger = logging.getLogger(__name__)

class SqlAnalysisStore(IAnalysisStore):
    """
    SQLAlchemy-backed analysis cache. Only statistics are stored; the
    normalized audio file itself is always produced fresh per media.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or SessionLocal

    def load(self, fingerprint: MediaFingerprint) -> Optional[AudioAnalysis]:
        with self.session_factory() as db:
            row = db.query(AudioAnalysisModel).filter(
                AudioAnalysisModel.source_path == fingerprint.path,
                AudioAnalysisModel.file_size_bytes == fingerprint.size_bytes,
                AudioAnalysisModel.modified_ns == fingerprint.modified_ns
            ).first()

            if not row:
                return None

            return AudioAnalysis(
                duration=row.duration,
                file_size_bytes=row.analyzed_size_bytes,
                average_rms_dbfs=row.average_rms_dbfs,
                leading_silence=row.leading_silence,
                normalized_audio_path=Path(row.source_path)
            )

    def save(self, fingerprint: MediaFingerprint, analysis: AudioAnalysis) -> None:
        """
        Insert-or-update for one fingerprint.
        """
        with self.session_factory() as db:
            try:
                row = db.query(AudioAnalysisModel).filter(
                    AudioAnalysisModel.source_path == fingerprint.path,
                    AudioAnalysisModel.file_size_bytes == fingerprint.size_bytes,
                    AudioAnalysisModel.modified_ns == fingerprint.modified_ns
                ).first()

                if row is None:
                    row = AudioAnalysisModel(
                        source_path=fingerprint.path,
                        file_size_bytes=fingerprint.size_bytes,
                        modified_ns=fingerprint.modified_ns
                    )
                    db.add(row)

                row.duration = analysis.duration
                row.analyzed_size_bytes = analysis.file_size_bytes
                row.average_rms_dbfs = analysis.average_rms_dbfs
                row.leading_silence = analysis.leading_silence

                db.commit()
                logger.debug(f"Analysis cached for {fingerprint.path}")
            except Exception as e:
                db.rollback()
                logger.error(f"Failed to cache analysis for {fingerprint.path}: {e}")
                raise
