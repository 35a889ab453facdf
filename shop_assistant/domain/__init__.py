"""领域层模型与协议。

包含：
- models: 统一的 ChatMessage / ChatRequest / ChatResult 模型。
- shop: 店铺记录、相似度结果及 ShopDirectory 协议。
- exceptions: 业务异常类型定义。
"""
