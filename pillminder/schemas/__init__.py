from .plan import StageConfig, parse_stage_config, dump_stage_config
