# Overview: Flask extension instances for database, migrations, and the notification broadcaster.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

from .broadcast import Broadcaster

db = SQLAlchemy()
migrate = Migrate()
broadcaster = Broadcaster()
