"""fairdeploy - single-VM Azure demo environment provisioning

Philosophy:
- Ruthless simplicity
- Fail fast with helpful guidance
- Security by design (no credentials echoed to the terminal)

fairdeploy creates a resource group and an Ubuntu VM through the Azure CLI,
hands the VM a first-boot script that installs Docker, clones a deployment
repository and starts its Docker Compose stack, then opens the inbound ports
the stack listens on.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
