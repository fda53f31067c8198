"""
Configuration Module

Environment-backed settings for the workflow editor.
"""
from botflow.config.workflow_config import WorkflowConfig, get_workflow_config, reset_workflow_config

__all__ = ['WorkflowConfig', 'get_workflow_config', 'reset_workflow_config']
