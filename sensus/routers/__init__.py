from sensus.routers import diary, evaluations, health, users

__all__ = ["diary", "evaluations", "health", "users"]
