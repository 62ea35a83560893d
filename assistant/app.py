"""Flask app for marketplace price checks.

Run with ``python -m assistant.app``.
"""

import atexit
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, Response, jsonify

# Load environment variables before config is imported
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from .api import EXTENSION_KEY, AssistantServices, api  # noqa: E402
from .clarification import ClarificationEngine  # noqa: E402
from .config import FLASK_DEBUG, FLASK_HOST, FLASK_PORT  # noqa: E402
from .generation import TextGenerationService  # noqa: E402
from .runner import AsyncRunner  # noqa: E402
from .sessions import SessionStore  # noqa: E402

__all__ = ["create_app"]


def create_app(
    runner: Optional[AsyncRunner] = None,
    generator: Optional[TextGenerationService] = None,
    engine: Optional[ClarificationEngine] = None,
) -> Flask:
    """Build the app with its shared services.

    Collaborators can be injected for tests; by default a fresh runner
    (browser launched on first use) and LLM-backed generator are made.
    """
    app = Flask(__name__)

    generator = generator or TextGenerationService()
    services = AssistantServices(
        runner=runner or AsyncRunner(),
        generator=generator,
        engine=engine or ClarificationEngine(generator),
        sessions=SessionStore(),
    )
    app.extensions[EXTENSION_KEY] = services
    app.register_blueprint(api)

    @app.route("/health", methods=["GET"])
    def health() -> Response:
        return jsonify({"status": "ok", "sessions": len(services.sessions)})

    return app


if __name__ == "__main__":
    app = create_app()
    atexit.register(app.extensions[EXTENSION_KEY].runner.shutdown)
    app.run(host=FLASK_HOST, port=FLASK_PORT, debug=FLASK_DEBUG)
