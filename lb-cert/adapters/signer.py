# adapters/signer.py
import logging
import os

import oci
import oci.auth.signers

log = logging.getLogger(__name__)


def _config_file_signer(config_file: str, profile: str):
    cfg = oci.config.from_file(os.path.expanduser(config_file), profile)
    signer = oci.signer.Signer(
        tenancy=cfg["tenancy"],
        user=cfg["user"],
        fingerprint=cfg["fingerprint"],
        private_key_file_location=cfg.get("key_file"),
        pass_phrase=cfg.get("pass_phrase"),
    )
    return signer, cfg.get("region")


def get_signer(settings):
    """
    Build the request signer for the configured auth mode.

    Returns (signer, region). The signers are requests auth objects, so the
    adapters attach them to their session. Inside OCI Functions the resource
    principal is used; outside it (local runs) the config file profile is the
    fallback.
    """
    mode = settings.auth_mode
    if mode == "resource_principal":
        try:
            signer = oci.auth.signers.get_resource_principals_signer()
            return signer, settings.region or getattr(signer, "region", None)
        except Exception as e:
            log.warning("resource principal unavailable (%s); falling back to %s [%s]",
                        e, settings.oci_config_file, settings.oci_profile)
    elif mode == "instance_principal":
        signer = oci.auth.signers.InstancePrincipalsSecurityTokenSigner()
        return signer, settings.region or getattr(signer, "region", None)

    signer, region = _config_file_signer(settings.oci_config_file, settings.oci_profile)
    return signer, settings.region or region
