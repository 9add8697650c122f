"""fabric-provisioner: declarative provisioning of a compute fabric.

One YAML document describes organizations, identity pools, VLANs/VSANs,
policies, port roles, templates, boot policies and service profiles. The
document is validated as a whole, then applied section by section in
dependency order through a fabric-management endpoint.
"""

__version__ = "0.1.0"
