"""GymHub: gym class booking backend."""
