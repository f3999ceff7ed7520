"""Contract Deployer: resumable, interactive smart-contract deployment orchestrator."""

__version__ = "0.1.0"
