from tests.fixtures.s3_fixtures import (  # noqa: F401
    aws_credentials,
    client,
    mocked_aws,
    object_store,
    s3_client,
    settings,
)
