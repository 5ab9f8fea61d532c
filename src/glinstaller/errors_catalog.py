"""Actionable error catalog for the Greenlight installer."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "not_root": {
        "what": "You must run this command as root.",
        "next": "Re-run the installer with sudo or from a root shell.",
    },
    "unsupported_release": {
        "what": "You must run this command on Ubuntu {release} server (detected: {detected}).",
        "next": "Provision a fresh Ubuntu {release} server and run the installer there.",
    },
    "unsupported_architecture": {
        "what": "You must run this command on a 64-bit server (detected: {detected}).",
        "next": "Use an x86_64 host.",
    },
    "placeholder_hostname": {
        "what": "You must specify a valid FQDN (not the FQDN given in the docs).",
        "next": "Pass the hostname that points at this server with `-s`.",
    },
    "invalid_email": {
        "what": "You must specify a valid email address (got `{email}`).",
        "next": "Pass a reachable email address with `-e`.",
    },
    "placeholder_email": {
        "what": "You must specify a valid email address (not the email in the docs).",
        "next": "Pass your own email address with `-e`.",
    },
    "placeholder_bigbluebutton": {
        "what": "You must use a valid BigBlueButton server (not the one in the example).",
        "next": "Pass your own server with `-b <hostname>:<secret>` or omit `-b` to use the demo server.",
    },
    "invalid_bigbluebutton": {
        "what": "You must respect the format <hostname>:<secret> when specifying your BigBlueButton server.",
        "next": "Run `bbb-conf --secret` on the BigBlueButton server to get both values.",
    },
    "bigbluebutton_cohosted": {
        "what": "Your FQDN matches that of the BigBlueButton server.",
        "next": (
            "This deployment installs Greenlight without BigBlueButton; to install both on the "
            "same system use https://github.com/bigbluebutton/bbb-install instead."
        ),
    },
    "bigbluebutton_installed": {
        "what": "BigBlueButton modules have been detected on this system ({packages}).",
        "next": (
            "This deployment installs Greenlight without BigBlueButton; to install both on the "
            "same system use https://github.com/bigbluebutton/bbb-install instead."
        ),
    },
    "nginx_preinstalled": {
        "what": "Nginx is already installed on this system by another mean, this deployment may impact your workload!",
        "next": "Remove and clean up nginx configurations or use a clean environment before proceeding.",
    },
    "ports_in_use": {
        "what": "Some required ports are already in use by another application ({ports}).",
        "next": "Clear out TCP ports 80, 443 and 5050 or use a clean environment before proceeding.",
    },
    "dns_unresolved": {
        "what": "Unable to resolve {hostname} to an IP address using DNS lookup.",
        "next": "Create an A record for {hostname} pointing at this server and wait for it to propagate.",
    },
    "dns_mismatch": {
        "what": "DNS lookup for {hostname} resolved to {resolved} but didn't match this system {ip}.",
        "next": "Point the A record for {hostname} at {ip} and retry.",
    },
    "local_ip_unknown": {
        "what": "Unable to determine local IP address.",
        "next": "Check that the server has a configured IPv4 address on its default route.",
    },
    "docker_missing": {
        "what": "Docker did not install.",
        "next": "Inspect the apt output above, fix the repository configuration and re-run the installer.",
    },
    "proxy_config_invalid": {
        "what": "greenlight-v3 failed to install due to nginx tests failing to pass: {details}",
        "next": "If using the official image then please contact the maintainers.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
