"""ftbfs - rebuild archive source packages in throwaway containers."""

__version__ = "0.1.0"
