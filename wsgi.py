from journal_press.config import Config
from journal_press.logging_setup import setup_logging
from journal_web import create_app

config = Config.from_env()
setup_logging(config.LOG_DIR, config.LOG_LEVEL)
application = create_app(config)

if __name__ == "__main__":
    application.run()
