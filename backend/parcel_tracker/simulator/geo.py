"""
Brazilian city catalogue and distance helpers for route simulation
- Coordinates are approximate city centres; is_hub marks distribution centres.
- Unknown cities fall back to their state capital, then to the country centroid.
"""

import math
import unicodedata
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class City:
    name: str
    state: str
    lat: float
    lng: float
    is_hub: bool = False


CITIES: list[City] = [
    # Sudeste
    City("São Paulo", "SP", -23.5505, -46.6333, True),
    City("Rio de Janeiro", "RJ", -22.9068, -43.1729, True),
    City("Belo Horizonte", "MG", -19.9167, -43.9345, True),
    City("Campinas", "SP", -22.9064, -47.0616, True),
    City("Guarulhos", "SP", -23.4538, -46.5333),
    City("Ribeirão Preto", "SP", -21.1767, -47.8208),
    City("Santos", "SP", -23.9608, -46.3336),
    City("São José dos Campos", "SP", -23.1791, -45.8872),
    City("Sorocaba", "SP", -23.5015, -47.4526),
    City("Taubaté", "SP", -23.0224, -45.5558),
    City("Registro", "SP", -24.4872, -47.8442),
    City("Bragança Paulista", "SP", -22.9519, -46.5417),
    City("Niterói", "RJ", -22.8833, -43.1036),
    City("Resende", "RJ", -22.4686, -44.4469),
    City("Volta Redonda", "RJ", -22.5232, -44.1042),
    City("Campos dos Goytacazes", "RJ", -21.7545, -41.3244),
    City("Juiz de Fora", "MG", -21.7642, -43.3496),
    City("Uberlândia", "MG", -18.9186, -48.2772),
    City("Pouso Alegre", "MG", -22.2300, -45.9364),
    City("Montes Claros", "MG", -16.7350, -43.8617),
    City("Uberaba", "MG", -19.7472, -47.9319),
    City("Vitória", "ES", -20.3155, -40.3128),
    City("Cachoeiro de Itapemirim", "ES", -20.8489, -41.1131),
    # Sul
    City("Curitiba", "PR", -25.4290, -49.2671, True),
    City("Porto Alegre", "RS", -30.0346, -51.2177, True),
    City("Florianópolis", "SC", -27.5954, -48.5480, True),
    City("Londrina", "PR", -23.3045, -51.1696),
    City("Maringá", "PR", -23.4205, -51.9333),
    City("Ponta Grossa", "PR", -25.0945, -50.1633),
    City("Cascavel", "PR", -24.9556, -53.4553),
    City("Joinville", "SC", -26.3045, -48.8487),
    City("Blumenau", "SC", -26.9194, -49.0661),
    City("Criciúma", "SC", -28.6775, -49.3697),
    City("Caxias do Sul", "RS", -29.1634, -51.1797),
    City("Pelotas", "RS", -31.7654, -52.3424),
    # Nordeste
    City("Salvador", "BA", -12.9714, -38.5014, True),
    City("Recife", "PE", -8.0476, -34.8770, True),
    City("Fortaleza", "CE", -3.7172, -38.5433, True),
    City("Natal", "RN", -5.7945, -35.2110),
    City("João Pessoa", "PB", -7.1195, -34.8450),
    City("Maceió", "AL", -9.6658, -35.7350),
    City("Aracaju", "SE", -10.9472, -37.0731),
    City("Teresina", "PI", -5.0920, -42.8038),
    City("São Luís", "MA", -2.5387, -44.2826),
    City("Feira de Santana", "BA", -12.2667, -38.9667),
    City("Vitória da Conquista", "BA", -14.8661, -40.8394),
    City("Caruaru", "PE", -8.2760, -35.9819),
    # Centro-Oeste
    City("Brasília", "DF", -15.7942, -47.8822, True),
    City("Goiânia", "GO", -16.6869, -49.2648, True),
    City("Campo Grande", "MS", -20.4697, -54.6201),
    City("Cuiabá", "MT", -15.6014, -56.0979),
    City("Anápolis", "GO", -16.3281, -48.9534),
    City("Itumbiara", "GO", -18.4192, -49.2156),
    # Norte
    City("Manaus", "AM", -3.1190, -60.0217, True),
    City("Belém", "PA", -1.4558, -48.4902, True),
    City("Marabá", "PA", -5.3686, -49.1178),
    City("Porto Velho", "RO", -8.7612, -63.9004),
    City("Boa Vista", "RR", 2.8235, -60.6758),
    City("Macapá", "AP", 0.0356, -51.0705),
    City("Rio Branco", "AC", -9.9754, -67.8249),
    City("Palmas", "TO", -10.2491, -48.3243),
    City("Imperatriz", "MA", -5.5264, -47.4919),
]

STATE_CAPITALS: dict[str, str] = {
    "AC": "Rio Branco", "AL": "Maceió", "AP": "Macapá", "AM": "Manaus",
    "BA": "Salvador", "CE": "Fortaleza", "DF": "Brasília", "ES": "Vitória",
    "GO": "Goiânia", "MA": "São Luís", "MT": "Cuiabá", "MS": "Campo Grande",
    "MG": "Belo Horizonte", "PA": "Belém", "PB": "João Pessoa", "PR": "Curitiba",
    "PE": "Recife", "PI": "Teresina", "RJ": "Rio de Janeiro", "RN": "Natal",
    "RS": "Porto Alegre", "RO": "Porto Velho", "RR": "Boa Vista",
    "SC": "Florianópolis", "SP": "São Paulo", "SE": "Aracaju", "TO": "Palmas",
}

STATE_REGIONS: dict[str, str] = {
    "SP": "SE", "RJ": "SE", "MG": "SE", "ES": "SE",
    "PR": "S", "SC": "S", "RS": "S",
    "BA": "NE", "SE": "NE", "AL": "NE", "PE": "NE", "PB": "NE",
    "RN": "NE", "CE": "NE", "PI": "NE", "MA": "NE",
    "DF": "CO", "GO": "CO", "MT": "CO", "MS": "CO",
    "AM": "N", "PA": "N", "AP": "N", "RR": "N", "RO": "N", "AC": "N", "TO": "N",
}

# Geographic centre of Brazil
COUNTRY_CENTROID = (-14.2350, -51.9253)

EARTH_RADIUS_KM = 6371.0


def _normalize(name: str) -> str:
    decomposed = unicodedata.normalize("NFKD", name.strip().lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


_INDEX: dict[tuple[str, str], City] = {(_normalize(c.name), c.state): c for c in CITIES}


def find_city(name: str | None, state: str | None) -> City | None:
    """Catalogue lookup, case and accent insensitive."""
    if not name or not state:
        return None
    return _INDEX.get((_normalize(name), state.strip().upper()))


def find_or_create_city(name: str, state: str) -> City:
    """Catalogue city, else a City placed at the state capital (or country centroid)."""
    found = find_city(name, state)
    if found:
        return found

    state = (state or "").strip().upper()
    capital = find_city(STATE_CAPITALS.get(state), state)
    if capital:
        return City(name.strip(), state, capital.lat, capital.lng)
    return City(name.strip(), state, *COUNTRY_CENTROID)


def same_region(state_a: str, state_b: str) -> bool:
    region_a = STATE_REGIONS.get((state_a or "").upper())
    return region_a is not None and region_a == STATE_REGIONS.get((state_b or "").upper())


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def distance_between(a: City, b: City) -> float:
    return haversine_km(a.lat, a.lng, b.lat, b.lng)


def nearest_city(lat: float, lng: float) -> City:
    return min(CITIES, key=lambda c: haversine_km(lat, lng, c.lat, c.lng))


@dataclass(frozen=True)
class Waypoint:
    city: City
    distance_from_origin: float  # km
    progress: float  # 0.0 - 1.0

    @property
    def label(self) -> str:
        if self.city.is_hub:
            return f"Centro de Distribuição {self.city.name}"
        return f"Unidade de Tratamento {self.city.name}"


def route_waypoints(origin: City, destination: City, count: int) -> list[Waypoint]:
    """
    count intermediate stops between origin and destination.
    Evenly spaced points on the straight line are snapped to the nearest catalogue city;
    repeats and the endpoints themselves are replaced by a regional hub placeholder
    at the interpolated coordinates, so exactly count waypoints are returned.
    """
    if count <= 0:
        return []

    total = distance_between(origin, destination)
    used = {(origin.name, origin.state), (destination.name, destination.state)}
    waypoints = []

    for i in range(1, count + 1):
        progress = i / (count + 1)
        lat = origin.lat + (destination.lat - origin.lat) * progress
        lng = origin.lng + (destination.lng - origin.lng) * progress
        candidate = nearest_city(lat, lng)

        if (candidate.name, candidate.state) in used:
            # Stay on the straight line under a generic hub label
            near_state = candidate.state
            candidate = replace(candidate, name=f"Regional {near_state}", lat=round(lat, 4),
                                lng=round(lng, 4), is_hub=True)
            if (candidate.name, candidate.state) in used:
                candidate = replace(candidate, name=f"Regional {near_state} {i}")
        used.add((candidate.name, candidate.state))

        waypoints.append(Waypoint(
            city=candidate,
            distance_from_origin=round(total * progress, 1),
            progress=progress,
        ))

    return waypoints
