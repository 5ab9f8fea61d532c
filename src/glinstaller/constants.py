"""Fixed values shared by the installer services."""

SUPPORTED_RELEASE = "20.04"
SUPPORTED_ARCHITECTURE = "x86_64"

# Values copied from the installation docs; real runs must not use them.
PLACEHOLDER_HOSTNAME = "bbb.example.com"
PLACEHOLDER_BIGBLUEBUTTON = "bbb.example.com:SECRET"

REQUIRED_PORTS = (80, 443, 5050)
CERTIFICATE_PORT = 443
CONFLICTING_PACKAGE_MARKER = "bbb"

GREENLIGHT_IMAGE = "bigbluebutton/greenlight:v3"
GREENLIGHT_CONTAINER = "greenlight-v3"
NGINX_FRAGMENT_NAME = "greenlight-v3.nginx"
SITE_NAME = "greenlight"

DEMO_BIGBLUEBUTTON_ENDPOINT = "https://test-install.blindsidenetworks.com/bigbluebutton/api"
DEMO_BIGBLUEBUTTON_SECRET = "8cd8ef52e8e101574e400365b55e11a6"

POSTGRES_USER = "postgres"
POSTGRES_ADDRESS = "postgres:5432"
POSTGRES_DATABASE = "greenlight-v3-production"
REDIS_ADDRESS = "redis:6379"

DOCKER_PREREQUISITES = (
    "apt-transport-https",
    "ca-certificates",
    "curl",
    "gnupg-agent",
    "software-properties-common",
    "openssl",
)
DOCKER_PACKAGES = ("docker-ce", "docker-ce-cli", "containerd.io")
DOCKER_GPG_URL = "https://download.docker.com/linux/ubuntu/gpg"
DOCKER_APT_REPOSITORY = "https://download.docker.com/linux/ubuntu"
COMPOSE_VERSION = "1.24.0"
COMPOSE_DOWNLOAD_URL = "https://github.com/docker/compose/releases/download/{version}/docker-compose-{system}-{machine}"

OPENDNS_RESOLVER = "resolver1.opendns.com"
EC2_METADATA_URL = "http://169.254.169.254/latest/meta-data/public-ipv4"
AZURE_METADATA_URL = (
    "http://169.254.169.254/metadata/instance/network/interface/0/ipv4/ipAddress/0/"
    "publicIpAddress?api-version=2017-08-01&format=text"
)
GCE_METADATA_URL = (
    "http://metadata/computeMetadata/v1/instance/network-interfaces/0/access-configs/0/external-ip"
)
METADATA_TIMEOUT = 5

LOCK_POLL_SECONDS = 1.0
STACK_SETTLE_SECONDS = 5.0
NAT_PROBE_TIMEOUT = 3.0

DIR_MODE = 0o755
SECRET_FILE_MODE = 0o600
EXECUTABLE_MODE = 0o755
