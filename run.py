import atexit
import os
from quote_portal import create_app, close_store

app = create_app()
atexit.register(close_store, app)

if __name__ == "__main__":
    port = int(os.getenv("PORT", "5000"))
    app.run(host="0.0.0.0", port=port)
