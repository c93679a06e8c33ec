"""Gunicorn entry point: ``gunicorn wsgi:app``."""
from app import create_app

app = create_app('config.Config')

if __name__ == '__main__':
    app.run(debug=app.config.get('DEBUG', False))
