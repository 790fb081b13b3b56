import os
from carebase import create_app

app = create_app()


if __name__ == "__main__":
    # Tables are created by create_app(); an unreachable database exits here
    app.run(port=int(os.getenv("PORT", "5000")), debug=app.config.get("DEBUG", False))
