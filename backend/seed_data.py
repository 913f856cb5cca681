"""
Demo data seeding script
- Simulation config row (documented defaults) and a set of demo deliveries with event plans
- Run: cd backend && python seed_data.py
"""

import random
import sys
import os

# Resolve the parcel_tracker package relative to backend/
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from parcel_tracker.database import engine, SessionLocal, Base
from parcel_tracker.models import Delivery
from parcel_tracker.schemas.deliveries import DeliveryCreate
from parcel_tracker.services.deliveries import create_delivery
from parcel_tracker.services.simulation_config import get_config_record, save_simulation_config
from parcel_tracker.simulator.config import SimulationConfig

DEMO_RECIPIENTS = [
    ("Ana Souza", "11987654321", "Rua das Laranjeiras, 120", "Rio de Janeiro", "RJ"),
    ("Bruno Lima", "31991234567", "Av. Afonso Pena, 1500", "Belo Horizonte", "MG"),
    ("Carla Mendes", "41999887766", "Rua XV de Novembro, 800", "Curitiba", "PR"),
    ("Diego Rocha", "51988776655", "Av. Ipiranga, 6681", "Porto Alegre", "RS"),
    ("Eduarda Alves", "71987651234", "Av. Sete de Setembro, 45", "Salvador", "BA"),
    ("Felipe Costa", "81999001122", "Rua da Aurora, 300", "Recife", "PE"),
    ("Gabriela Nunes", "85988112233", "Av. Beira Mar, 2100", "Fortaleza", "CE"),
    ("Henrique Dias", "61999334455", "SQS 308 Bloco C", "Brasília", "DF"),
    ("Isabela Martins", "92988445566", "Av. Eduardo Ribeiro, 520", "Manaus", "AM"),
    ("João Pereira", "19997776655", "Rua Barão de Jaguara, 900", "Campinas", "SP"),
    ("Karina Torres", None, "Rua Sem Número", "Cidade Nova", "MT"),
    ("Lucas Ferreira", "91987650000", "Av. Presidente Vargas, 10", "Belém", "PA"),
]

PACKAGES = [
    ("1x Fone de ouvido Bluetooth", 0.4),
    ("2x Camiseta algodão", 0.6),
    ("1x Cafeteira elétrica", 2.8),
    ("3x Livro", 1.5),
    ("1x Kit de ferramentas", 4.2),
]


def seed_config(session) -> SimulationConfig:
    if get_config_record(session) is None:
        config = save_simulation_config(session, SimulationConfig.defaults().to_dict())
        print("  simulation_config: defaults stored")
        return config
    print("  simulation_config: already present")
    return SimulationConfig.from_record(get_config_record(session))


def seed_deliveries(session, config: SimulationConfig, rng: random.Random):
    if session.query(Delivery).count() > 0:
        print("  deliveries: already present, skipped")
        return

    total_events = 0
    for name, phone, address, city, state in DEMO_RECIPIENTS:
        description, weight = rng.choice(PACKAGES)
        delivery, events = create_delivery(session, DeliveryCreate(
            recipient_name=name,
            recipient_phone=phone,
            recipient_email=f"{name.split()[0].lower()}@example.com",
            destination_address=address,
            destination_city=city,
            destination_state=state,
            package_description=description,
            package_weight=weight,
        ), config, rng=rng)
        total_events += events
        print(f"  {delivery.tracking_code} -> {city}/{state}: {events} events, ETA {delivery.estimated_delivery}")

    print(f"  deliveries: {len(DEMO_RECIPIENTS)} created, {total_events} scheduled events")


def main():
    print("Creating tables...")
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    try:
        print("Seeding...")
        config = seed_config(session)
        seed_deliveries(session, config, random.Random(42))
        print("Done.")
    finally:
        session.close()


if __name__ == "__main__":
    main()
