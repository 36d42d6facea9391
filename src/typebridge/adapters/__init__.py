"""Source adapters: schema sources -> raw models."""

from typebridge.adapters.mongoose import MongooseAdapter
from typebridge.adapters.prisma import PrismaAdapter

__all__ = ["MongooseAdapter", "PrismaAdapter"]
