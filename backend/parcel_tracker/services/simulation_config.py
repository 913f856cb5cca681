"""
Simulation config loader: the stored singleton row, else the documented defaults
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from parcel_tracker.exceptions import PersistenceError
from parcel_tracker.models import SimulationConfigRecord
from parcel_tracker.services.activity import log_activity
from parcel_tracker.simulator.config import SimulationConfig

logger = logging.getLogger(__name__)


def get_config_record(db: Session) -> SimulationConfigRecord | None:
    return db.query(SimulationConfigRecord).order_by(SimulationConfigRecord.id.asc()).first()


def load_simulation_config(db: Session) -> SimulationConfig:
    record = get_config_record(db)
    if record is None:
        return SimulationConfig.defaults()
    return SimulationConfig.from_record(record)


def save_simulation_config(db: Session, values: dict) -> SimulationConfig:
    """
    Validate and upsert the singleton row.
    Raises ConfigurationError (invalid ranges) or PersistenceError.
    """
    config = SimulationConfig(**values).validate()

    record = get_config_record(db)
    if record is None:
        record = SimulationConfigRecord()
        db.add(record)
    for field, value in config.to_dict().items():
        setattr(record, field, value)

    log_activity(db, "update_simulation_config", "simulation_config", None, config.to_dict())
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Falha ao salvar configuração: {e}") from e

    logger.info(
        f"Simulation config saved: origin {config.origin_city}/{config.origin_state}, "
        f"{config.min_delivery_days}-{config.max_delivery_days} days, "
        f"{config.update_start_hour}h-{config.update_end_hour}h"
    )
    return config
