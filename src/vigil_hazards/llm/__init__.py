"""OpenAI 兼容的 LLM 客户端、端点failover与结构化生成。"""
