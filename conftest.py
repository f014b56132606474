pytest_plugins = ["drivemigrate.testing.fixtures"]
