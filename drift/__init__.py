"""drift: Supabase branch resolution and production guard."""


from importlib.metadata import PackageNotFoundError, version


try: __version__ = version("drift-cli")
except PackageNotFoundError: __version__ = "0+local"
