"""
Archivo de conveniencia para usar el CLI de Flask:
    python manage.py run
    python manage.py shell
    flask db migrate / upgrade (con FLASK_APP=wsgi.py)
    python seed_data.py      (usuarios del staff + paciente de ejemplo)
"""

from flask.cli import main

if __name__ == "__main__":
    main()
