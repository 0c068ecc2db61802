from google.cloud import secretmanager
import os
import logging
from concurrent.futures import ThreadPoolExecutor

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# env var -> secret suffix
SECRET_MAP = {
    "DATABASE_URL": "DATABASE_URL",
    "AUTH0_ALGORITHMS": "AUTH0_ALGORITHMS",
    "AUTH0_API_AUDIENCE": "AUTH0_API_AUDIENCE",
    "AUTH0_DOMAIN": "AUTH0_DOMAIN",
    "AUTH0_ISSUER": "AUTH0_ISSUER",
}

REQUIRED_VARS = list(SECRET_MAP)


def access_secret_version(secret_id, version_id="latest"):
    client = secretmanager.SecretManagerServiceClient()
    project = os.getenv("GCP_PROJECT_ID")
    name = f"projects/{project}/secrets/{secret_id}/versions/{version_id}"
    response = client.access_secret_version(name=name)
    return response.payload.data.decode('UTF-8')


def init_secrets():
    env = os.getenv("ENV", "DEV")
    logger.debug(f"Initializing secrets for environment: {env}")
    if env in ("PROD", "STG"):
        # Load secrets concurrently
        executor = ThreadPoolExecutor()
        futures = {}
        for env_var, secret_suffix in SECRET_MAP.items():
            secret_id = f"QP_{env}_{secret_suffix}"
            futures[env_var] = (secret_id, executor.submit(
                access_secret_version,
                secret_id=secret_id,
                version_id="latest"
            ))

        for env_var, (secret_id, future) in futures.items():
            try:
                os.environ[env_var] = future.result()
                logger.debug(f"Set {env_var} from secret {secret_id}")
            except Exception as e:
                logger.error(f"Failed to load secret for {env_var}: {e}")
                raise
        executor.shutdown()
    else:
        logger.info("Loading secrets from local .env file")
        from dotenv import load_dotenv
        load_dotenv()

    missing = [var for var in REQUIRED_VARS if not os.getenv(var)]
    if missing:
        raise EnvironmentError(f"Missing required environment variables: {', '.join(missing)}")

    logger.info("Successfully initialized all secrets")
