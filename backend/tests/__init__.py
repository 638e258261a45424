# Register every SQLModel table before any test database is created
import carebridge.models  # noqa: F401
