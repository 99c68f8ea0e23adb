"""PCAL Core -- 事件日志（journal）、物化视图与重放恢复"""
