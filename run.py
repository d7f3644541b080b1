import logging
from bubble_arcade import create_app

logging.basicConfig(
    level=logging.INFO,   # <-- allow INFO and above
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

app = create_app()

if __name__ == "__main__":
    with app.app_context():
        from bubble_arcade.db import db
        db.create_all()
    app.run(host="0.0.0.0", port=5000, debug=True)
