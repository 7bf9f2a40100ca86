import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Float, BigInteger, DateTime, Uuid, UniqueConstraint
from captioner.core.database.base import Base


def utc_now():
    return datetime.now(timezone.utc)


class AudioAnalysisModel(Base):
    """
    Cached analysis statistics for one physical media file.
    Keyed by path + size + modification time, so an edited file is re-analysed.
    """
    __tablename__ = "audio_analyses"
    __table_args__ = (
        UniqueConstraint("source_path", "file_size_bytes", "modified_ns", name="uq_audio_analysis_fingerprint"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    source_path = Column(String, nullable=False, index=True)
    file_size_bytes = Column(BigInteger, nullable=False)
    modified_ns = Column(BigInteger, nullable=False)

    duration = Column(Float, nullable=False)
    analyzed_size_bytes = Column(BigInteger, nullable=False, default=0)
    average_rms_dbfs = Column(Float, nullable=False)
    leading_silence = Column(Float, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utc_now)
