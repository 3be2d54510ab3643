from sqlalchemy import inspect

from app.db.session import engine
from app.db.base import Base  # importa todos los modelos

# Verificar qué tablas existen ya
inspector = inspect(engine)
existing_tables = set(inspector.get_table_names())

missing = [table.name for table in Base.metadata.sorted_tables if table.name not in existing_tables]
for name in missing:
    print(f"Creando tabla {name}...")

# create_all respeta el orden de dependencias entre tablas
Base.metadata.create_all(bind=engine, checkfirst=True)

print('Proceso de creación de tablas completado')
