import os

from connyvet import create_app
from connyvet.config import DevConfig, ProdConfig


def _running_in_production() -> bool:
    return os.getenv("CONNYVET_ENV", "").strip().lower() in ("production", "prod")


config = ProdConfig if _running_in_production() else DevConfig
app = create_app(config)

if __name__ == "__main__":
    app.run()
