"""
Associate an S3 bucket with Macie, change its classification, then remove it.

Requires AWS credentials for an account with Macie Classic enabled.

    python examples/macie_association.py my-logs app/
"""

import logging
import sys

from skyform import Provider, SkyformError
from skyform.config import AwsConfig

TYPE_NAME = "aws_macie_s3_bucket_association"

logging.basicConfig(level=logging.INFO)

bucket = sys.argv[1] if len(sys.argv) > 1 else "my-logs"
prefix = sys.argv[2] if len(sys.argv) > 2 else ""

provider = Provider(config=AwsConfig.from_env())
print(f"✓ {provider}")

config = {"bucket_name": bucket}
if prefix:
    config["prefix"] = prefix

try:
    state = provider.create(TYPE_NAME, config)
    print(f"✓ Associated {state['id']}: {state['classification_type']}")

    # Run a one-time full classification on top of the continuous one
    config["classification_type"] = [{"one_time": "FULL"}]
    print(f"  Plan: {provider.plan(TYPE_NAME, state, config).action}")
    state = provider.apply(TYPE_NAME, state, config)
    print(f"✓ Updated {state['id']}: {state['classification_type']}")

    provider.delete(TYPE_NAME, state)
    print(f"✓ Disassociated {state['id']}")
except SkyformError as e:
    print(f"✗ {e}", file=sys.stderr)
    sys.exit(1)
