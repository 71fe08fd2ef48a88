"""
Ciclos Formativos catalog.

The centre's offer of training cycles, grouped by professional family.
`seed_ciclos` inserts the ones missing from `ciclosFormativos`; running it
twice adds nothing the second time.
"""

import logging
from typing import Dict, List

from fct_admin.services.mongo_service import CicloService

logger = logging.getLogger(__name__)


# (nombre, nivel, duracion in hours)
CATALOG: Dict[str, List[tuple]] = {
    "Administración y Gestión": [
        ("Administración y Finanzas", "Superior", "2000"),
        ("Asistencia a la dirección", "Superior", "2000"),
        ("Gestión administrativa", "Medio", "2000"),
    ],
    "Servicios Socioculturales y a la Comunidad": [
        ("Integración social", "Superior", "2000"),
        ("Educación infantil", "Superior", "2000"),
        ("Atención a personas en Situación de Dependencia", "Medio", "2000"),
    ],
    "Comercio y Marketing": [
        ("Comercio internacional", "Superior", "2000"),
        ("Transporte y Logística", "Superior", "2000"),
        ("Marketing y Publicidad", "Superior", "2000"),
    ],
    "Imagen y Sonido": [
        ("Animaciones 3D, Juegos y Entornos Interactivos", "Superior", "2000"),
    ],
    "Hostelería y Turismo": [
        ("Gestión de alojamientos turísticos", "Superior", "2000"),
        ("Cocina y Gastronomía", "Medio", "2000"),
    ],
    "Instalaciones y Mantenimiento": [
        ("Instalaciones Frigoríficas y de Climatización", "Medio", "2000"),
        ("Mecánica de Vehículos Automóviles", "Medio", "2000"),
        ("Instalaciones Eléctricas y Automáticas", "Medio", "2000"),
        ("Mantenimiento y Servicios a la Producción", "Medio", "2000"),
    ],
    "Sanidad": [
        ("Anatomía Patológica y Citodiagnóstico", "Superior", "2000"),
        ("Dietética", "Superior", "2000"),
        ("Higiene Bucodental", "Superior", "2000"),
        ("Imagen para el Diagnóstico y Medicina Nuclear", "Superior", "2000"),
        ("Laboratorio Clínico y Biomédico", "Superior", "2000"),
        ("Prótesis Dentales", "Superior", "2000"),
        ("Radioterapia y Dosimetría", "Superior", "2000"),
        ("Documentación y Administración Sanitarias", "Superior", "2000"),
        ("Cuidados Auxiliares Enfermería", "Medio", "1400"),
        ("Emergencias Sanitarias", "Medio", "2000"),
        ("Farmacia y Parafarmacia", "Medio", "2000"),
    ],
    "Informática y Comunicaciones": [
        ("Administración de Sistemas Informáticos en Red (ASIR)", "Superior", "2000"),
        ("Desarrollo de Aplicaciones Multiplataforma", "Superior", "2000"),
        ("Desarrollo de Aplicaciones Web", "Superior", "2000"),
        ("Sistemas Microinformáticos y Redes (SMR)", "Medio", "2000"),
    ],
}


def catalog_size() -> int:
    return sum(len(ciclos) for ciclos in CATALOG.values())


def seed_ciclos(service: CicloService = None) -> dict:
    """
    Insert every catalog ciclo not yet present (matched on nombre + familia).

    Returns {"added", "existing", "details", "message"}. A store error stops
    the run; ciclos added before it stay in place.
    """
    service = service or CicloService()
    details = []
    added = existing = 0

    for familia, ciclos in CATALOG.items():
        for nombre, nivel, duracion in ciclos:
            if service.find_by_nombre_familia(nombre, familia):
                details.append(f"Ya existe: {nombre} ({familia})")
                existing += 1
                continue
            service.insert({"nombre": nombre, "nivel": nivel, "familia": familia, "duracion": duracion})
            details.append(f"Agregado: {nombre} ({familia})")
            added += 1

    logger.info("Ciclos catalog seeded: %d added, %d existing", added, existing)
    return {
        "added": added,
        "existing": existing,
        "details": details,
        "message": f"Proceso completado. Se agregaron {added} ciclos formativos. {existing} ya existían.",
    }
