# backend/gdd_studio/config.py
import logging
import os

from dotenv import load_dotenv
load_dotenv()

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ["OPENAI_API_KEY"]

# Key Vault secret name -> CONFIG key
KEYVAULT_SECRETS = {
    "openai-api-key": "OPENAI_API_KEY",
    "azure-openai-endpoint": "AZURE_OPENAI_ENDPOINT",
}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _load_keyvault_secrets() -> dict:
    from azure.core.exceptions import ResourceNotFoundError
    from azure.identity import ClientSecretCredential
    from azure.keyvault.secrets import SecretClient

    kv_name = os.getenv("KEYVAULT_NAME")
    if not kv_name:
        raise RuntimeError("KEYVAULT_NAME is missing in .env")

    url = f"https://{kv_name}.vault.azure.net/"
    logger.info("Connecting to Key Vault: %s", url)

    credential = ClientSecretCredential(
        tenant_id=os.getenv("AZURE_TENANT_ID"),
        client_id=os.getenv("AZURE_CLIENT_ID"),
        client_secret=os.getenv("AZURE_CLIENT_SECRET")
    )
    client = SecretClient(vault_url=url, credential=credential)

    secrets = {}
    for secret_name, key in KEYVAULT_SECRETS.items():
        try:
            secrets[key] = client.get_secret(secret_name).value
        except ResourceNotFoundError:
            logger.warning("Key Vault secret not found: %s", secret_name)
            secrets[key] = None
    logger.info("Loaded %d secrets from Key Vault", sum(v is not None for v in secrets.values()))
    return secrets


def load_config() -> dict:
    """
    Build the runtime configuration from the environment (and .env).
    With USE_KEYVAULT=true the credentials come from Azure Key Vault instead.
    """
    config = {}

    if _env_flag("USE_KEYVAULT", False):
        config.update(_load_keyvault_secrets())
    else:
        config["OPENAI_API_KEY"] = os.getenv("OPENAI_API_KEY")
        config["AZURE_OPENAI_ENDPOINT"] = os.getenv("AZURE_OPENAI_ENDPOINT")

    # Normalize endpoint
    if config.get("AZURE_OPENAI_ENDPOINT"):
        config["AZURE_OPENAI_ENDPOINT"] = config["AZURE_OPENAI_ENDPOINT"].rstrip("/")

    config["AZURE_OPENAI_API_VERSION"] = os.getenv("AZURE_OPENAI_API_VERSION", "2024-08-01-preview")
    config["OPENAI_MODEL"] = os.getenv("OPENAI_MODEL", "gpt-4")
    config["OPENAI_IMAGE_MODEL"] = os.getenv("OPENAI_IMAGE_MODEL", "dall-e-2")
    config["OPENAI_IMAGE_SIZE"] = os.getenv("OPENAI_IMAGE_SIZE", "512x512")

    config["HOST"] = os.getenv("HOST", "127.0.0.1")
    config["PORT"] = _env_int("PORT", 8855)
    config["GDD_OUTPUT_DIR"] = os.getenv("GDD_OUTPUT_DIR", "output")
    config["GDD_OPEN_BROWSER"] = _env_flag("GDD_OPEN_BROWSER", True)

    return config


def missing_required(config: dict) -> list:
    """Names of required keys that are unset or empty."""
    return [key for key in REQUIRED_KEYS if not config.get(key)]


CONFIG = load_config()
