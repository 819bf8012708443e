from savvy.prompts.assembler import PromptAssembler, capture_context, capture_parts

__all__ = ["PromptAssembler", "capture_context", "capture_parts"]
