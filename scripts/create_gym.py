#!/usr/bin/env python
"""
Script para crear un nuevo gimnasio (tenant)

Uso:
    python scripts/create_gym.py --name "CrossFit Downtown" --subdomain "crossfit-downtown" --timezone "Europe/Athens"
"""

import sys
import os
import argparse
from sqlalchemy.orm import Session

# Agregar el directorio raíz al path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi import HTTPException
from pydantic import ValidationError

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.schemas.gym import GymCreate
from app.services.gym import gym_service
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_gym(name: str, subdomain: str, timezone: str, db: Session = None):
    """
    Crea un nuevo gimnasio.

    Args:
        name: Nombre del gimnasio
        subdomain: Subdominio único (ej: 'crossfit-downtown')
        timezone: Zona horaria IANA; determina días y horas locales de la programación
        db: Sesión de base de datos (opcional)
    """
    should_close_db = False
    if db is None:
        db = SessionLocal()
        should_close_db = True

    try:
        print("=" * 70)
        print("CREANDO NUEVO GIMNASIO")
        print("=" * 70)

        gym_in = GymCreate(name=name, subdomain=subdomain, timezone=timezone)
        gym = gym_service.create_gym(db, gym_in=gym_in)

        print(f"   Gimnasio creado (ID: {gym.id})")
        print(f"   Nombre:     {gym.name}")
        print(f"   Subdominio: {gym.subdomain}")
        print(f"   Zona:       {gym.timezone}")
        print(f"\nUsa el header X-Gym-ID: {gym.id} en las peticiones a /schedule")
        return gym
    finally:
        if should_close_db:
            db.close()


def main():
    parser = argparse.ArgumentParser(description="Crear un nuevo gimnasio")
    parser.add_argument("--name", required=True, help="Nombre del gimnasio")
    parser.add_argument("--subdomain", required=True, help="Subdominio único (a-z, 0-9, -)")
    parser.add_argument(
        "--timezone",
        default=get_settings().DEFAULT_GYM_TIMEZONE,
        help="Zona horaria IANA (default: DEFAULT_GYM_TIMEZONE)"
    )
    args = parser.parse_args()

    try:
        create_gym(name=args.name, subdomain=args.subdomain, timezone=args.timezone)
    except ValidationError as e:
        logger.error(f"Datos inválidos: {e}")
        sys.exit(1)
    except HTTPException as e:
        logger.error(e.detail)
        sys.exit(1)


if __name__ == "__main__":
    main()
